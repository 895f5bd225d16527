# common/logging_config.py
import logging

from .settings import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(service_name: str) -> logging.Logger:
    """
    Configure root logging once for a service process.

    Parameters
    ----------
    service_name : str
        Name used for the service-level logger.

    Returns
    -------
    logging.Logger
        Logger named after the service.
    """
    logging.basicConfig(level=LOG_LEVEL.upper(), format=LOG_FORMAT)
    return logging.getLogger(service_name)
