"""
NonceGuard - fail-fast replay check for ERC-3009 authorizations.

The token contract's own nonce bitmap is authoritative. This read only lets the
relay reject a replay before paying gas for a transaction that would revert;
nothing is locked between the check and the submission.
"""

import logging
from typing import TYPE_CHECKING

from x402_relay.abi import TRANSFER_WITH_AUTHORIZATION_ABI
from x402_relay.exceptions import ReplayRejected
from x402_relay.tokens import TokenInfo
from x402_relay.utils.hexutil import hex_to_bytes

if TYPE_CHECKING:
    from x402_relay.signers.facilitator import FacilitatorSigner

logger = logging.getLogger(__name__)


class NonceGuard:
    """Reads ``authorizationState(authorizer, nonce)`` on the token contract."""

    def __init__(self, signer: "FacilitatorSigner") -> None:
        self._signer = signer

    async def is_used(self, token: TokenInfo, authorizer: str, nonce: str) -> bool:
        used = await self._signer.read_contract(
            contract_address=token.address,
            abi=TRANSFER_WITH_AUTHORIZATION_ABI,
            method="authorizationState",
            args=[authorizer, hex_to_bytes(nonce)],
            network=token.network,
        )
        return bool(used)

    async def ensure_unused(self, token: TokenInfo, authorizer: str, nonce: str) -> None:
        """Raise ReplayRejected if the nonce is already consumed."""
        if await self.is_used(token, authorizer, nonce):
            logger.warning(
                "Replay rejected: nonce %s already used by %s on %s",
                nonce,
                authorizer,
                token.symbol,
            )
            raise ReplayRejected(authorizer, nonce)
