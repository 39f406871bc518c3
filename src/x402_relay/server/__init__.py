"""
x402-relay Server - payment negotiation for priced resources
"""

from x402_relay.server.negotiator import DEFAULT_DESCRIPTION, PaymentNegotiator

__all__ = ["PaymentNegotiator", "DEFAULT_DESCRIPTION"]
