"""
EvmFacilitatorSigner - EVM facilitator signer implementation
"""

import logging
from typing import Any

from x402_relay.exceptions import ConfirmationTimeout
from x402_relay.signers.facilitator.base import FacilitatorSigner
from x402_relay.utils.evm_client import EvmReadClient

logger = logging.getLogger(__name__)

# Canonical EIP-712 domain field order and types
_EIP712_DOMAIN_FIELDS: list[tuple[str, str]] = [
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
    ("salt", "bytes32"),
]


def eip712_domain_type_from_keys(domain: dict[str, Any]) -> list[dict[str, str]]:
    """Build an EIP712Domain type array from the keys present in *domain*."""
    return [{"name": name, "type": typ} for name, typ in _EIP712_DOMAIN_FIELDS if name in domain]


class EvmFacilitatorSigner(FacilitatorSigner):
    """EVM facilitator signer implementation using web3.py"""

    def __init__(self, private_key: str, read_client: EvmReadClient | None = None) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self._private_key = private_key
        self._address = self._derive_address(private_key)
        self._client = read_client or EvmReadClient()
        logger.debug("EvmFacilitatorSigner initialized", extra={"address": self._address})

    @classmethod
    def from_private_key(
        cls, private_key: str, read_client: EvmReadClient | None = None
    ) -> "EvmFacilitatorSigner":
        """Create signer from private key"""
        return cls(private_key, read_client)

    @staticmethod
    def _derive_address(private_key: str) -> str:
        """Derive EVM address from private key"""
        from eth_account import Account

        return Account.from_key(private_key).address

    def get_address(self) -> str:
        return self._address

    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        message: dict[str, Any],
        signature: str,
        primary_type: str,
    ) -> bool:
        """Recover the EIP-712 signer locally and compare with *address*."""
        try:
            from eth_account import Account
            from eth_account.messages import encode_typed_data

            typed_data = {
                "types": {"EIP712Domain": eip712_domain_type_from_keys(domain), **types},
                "primaryType": primary_type,
                "domain": domain,
                "message": message,
            }

            signable = encode_typed_data(full_message=typed_data)
            sig_bytes = bytes.fromhex(signature[2:] if signature.startswith("0x") else signature)
            recovered = Account.recover_message(signable, signature=sig_bytes)

            return recovered.lower() == address.lower()
        except Exception as e:
            logger.error("Signature verification failed", extra={"error": str(e)})
            return False

    async def read_contract(
        self,
        contract_address: str,
        abi: Any,
        method: str,
        args: list[Any],
        network: str,
    ) -> Any:
        return await self._client.read_contract(contract_address, abi, method, args, network)

    async def write_contract(
        self,
        contract_address: str,
        abi: Any,
        method: str,
        args: list[Any],
        network: str,
    ) -> str | None:
        """Build, sign and broadcast a contract transaction paid by the facilitator."""
        w3 = self._client.get_web3(network)

        try:
            contract = self._client.contract(contract_address, abi, network)
            func = getattr(contract.functions, method)

            tx = await func(*args).build_transaction(
                {
                    "from": self._address,
                    "nonce": await w3.eth.get_transaction_count(self._address, "pending"),
                    "chainId": await w3.eth.chain_id,
                }
            )

            signed_tx = w3.eth.account.sign_transaction(tx, private_key=self._private_key)
            tx_hash = await w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            return w3.to_hex(tx_hash)
        except Exception as e:
            logger.error(
                "Contract write failed: %s",
                e,
                exc_info=True,
                extra={"method": method, "contract": contract_address},
            )
            return None

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: float = 60,
        network: str = "",
    ) -> dict[str, Any]:
        """Wait for EVM transaction confirmation"""
        from web3.exceptions import TimeExhausted

        w3 = self._client.get_web3(network)
        try:
            receipt = await w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise ConfirmationTimeout(tx_hash, timeout) from e

        return {
            "hash": tx_hash,
            "blockNumber": str(receipt["blockNumber"]),
            "status": "confirmed" if receipt["status"] == 1 else "failed",
            "receipt": receipt,
        }
