"""Run the gateway with uvicorn: ``python -m market_gateway``."""

import uvicorn

from market_gateway.api.routes import create_app
from market_gateway.config import settings
from market_gateway.observability import configure_logging


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
