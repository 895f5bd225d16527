import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

from fastapi import HTTPException, Request, status

from common import settings


def sliding_window_limiter(max_requests: int, window_seconds: int) -> Callable:
    """
    Build a dependency limiting each client IP to ``max_requests`` calls
    per ``window_seconds`` on a given path.

    Limiting is switched off when ``TESTING=1``.

    Parameters
    ----------
    max_requests : int
        Calls allowed inside one window.
    window_seconds : int
        Window length in seconds.

    Returns
    -------
    Callable
        A FastAPI dependency raising HTTP 429 with a ``Retry-After`` header
        once the budget is spent.
    """
    hits: Dict[str, Deque[float]] = defaultdict(deque)

    def dependency(request: Request) -> None:
        if settings.TESTING:
            return
        client_ip = request.client.host if request.client else "unknown"
        window = hits[f"{client_ip}:{request.url.path}"]

        now = time.monotonic()
        while window and window[0] <= now - window_seconds:
            window.popleft()

        if len(window) >= max_requests:
            retry_after = int(window[0] + window_seconds - now) + 1
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests from this IP, please slow down",
                headers={"Retry-After": str(retry_after)},
            )
        window.append(now)

    return dependency


ip_rate_limiter = sliding_window_limiter(settings.AUTH_RATE_LIMIT, settings.AUTH_RATE_WINDOW_SECONDS)
