"""HTTP surface for the market data gateway."""

from market_gateway.api.routes import ErrorResponse, create_app

__all__ = ["ErrorResponse", "create_app"]
