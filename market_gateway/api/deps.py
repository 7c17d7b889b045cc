"""Request-scoped access to the gateway singleton."""

from fastapi import HTTPException

from market_gateway.services.gateway import Gateway, get_gateway


def require_gateway() -> Gateway:
    """Return the registered gateway.

    Raises:
        HTTPException: 503 if the application has not finished starting.
    """
    gateway = get_gateway()
    if gateway is None:
        raise HTTPException(status_code=503, detail="Gateway not initialized")
    return gateway
