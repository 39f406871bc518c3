"""
Facilitator Signers
"""

from x402_relay.signers.facilitator.base import FacilitatorSigner
from x402_relay.signers.facilitator.evm_signer import EvmFacilitatorSigner

__all__ = ["FacilitatorSigner", "EvmFacilitatorSigner"]
