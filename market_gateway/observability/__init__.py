"""Observability helpers for the gateway."""

from market_gateway.observability.logconfig import configure_logging

__all__ = ["configure_logging"]
