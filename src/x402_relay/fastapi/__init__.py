"""
FastAPI application for the x402 relay
"""

from x402_relay.fastapi.app import RelayServices, create_app

__all__ = ["RelayServices", "create_app"]
