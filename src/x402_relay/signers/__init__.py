"""
x402-relay Signers
"""

from x402_relay.signers.facilitator import EvmFacilitatorSigner, FacilitatorSigner

__all__ = ["FacilitatorSigner", "EvmFacilitatorSigner"]
