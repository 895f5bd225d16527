import os
import tempfile

# Service modules read their configuration at import time, so the test
# environment has to be in place before any of them is imported.
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite:///" + os.path.join(tempfile.gettempdir(), "hotel_services_test.db"),
)
os.environ.setdefault("TESTING", "1")
os.environ.pop("REDIS_URL", None)
os.environ.setdefault("ROOM_SERVICE_URL", "http://rooms.test")
