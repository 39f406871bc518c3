"""
Facilitator signer base interface
"""

from abc import ABC, abstractmethod
from typing import Any


class FacilitatorSigner(ABC):
    """
    Abstract base class for facilitator signers.

    Responsible for verifying signatures and executing on-chain transactions
    paid for by the facilitator's own key.
    """

    @abstractmethod
    def get_address(self) -> str:
        """Get the facilitator's account address"""
        pass

    @abstractmethod
    async def verify_typed_data(
        self,
        address: str,
        domain: dict[str, Any],
        types: dict[str, Any],
        message: dict[str, Any],
        signature: str,
        primary_type: str,
    ) -> bool:
        """
        Verify EIP-712 typed data signature.

        Args:
            address: Expected signer address
            domain: EIP-712 domain
            types: Type definitions
            message: Signed message
            signature: Signature to verify
            primary_type: Primary type name

        Returns:
            True if signature is valid
        """
        pass

    @abstractmethod
    async def read_contract(
        self,
        contract_address: str,
        abi: Any,
        method: str,
        args: list[Any],
        network: str,
    ) -> Any:
        """Execute a read-only contract call"""
        pass

    @abstractmethod
    async def write_contract(
        self,
        contract_address: str,
        abi: Any,
        method: str,
        args: list[Any],
        network: str,
    ) -> str | None:
        """
        Execute a contract write transaction.

        Args:
            contract_address: Contract address
            abi: Contract ABI (JSON string or list)
            method: Method name
            args: Method arguments
            network: Network identifier (e.g. "eip155:84532")

        Returns:
            Transaction hash, or None on failure
        """
        pass

    @abstractmethod
    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: float = 60,
        network: str = "",
    ) -> dict[str, Any]:
        """
        Wait for transaction confirmation.

        Args:
            tx_hash: Transaction hash
            timeout: Timeout in seconds
            network: Network identifier

        Returns:
            Dict with hash, blockNumber and status ("confirmed" or "failed")

        Raises:
            ConfirmationTimeout: If the transaction is not mined within *timeout*
        """
        pass
