"""
Pytest configuration and fixtures
"""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest

PAYER_ADDRESS = "0x1111111111111111111111111111111111111111"
RECIPIENT_ADDRESS = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
SMART_WALLET_ADDRESS = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def mock_evm_private_key():
    """Mock EVM private key for tests"""
    return "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"


@pytest.fixture
def mock_signer():
    signer = MagicMock()
    signer.get_address.return_value = "0xFCAd0B19bB29D4674531d6f115237E16AfCE377c"
    signer.verify_typed_data = AsyncMock(return_value=True)
    signer.read_contract = AsyncMock(return_value=False)
    signer.write_contract = AsyncMock(return_value="0x" + "ab" * 32)
    signer.wait_for_transaction_receipt = AsyncMock(
        return_value={"hash": "0x" + "ab" * 32, "blockNumber": "123", "status": "confirmed"}
    )
    return signer


@pytest.fixture
def mock_bundler():
    from x402_relay.utils.bundler import GasPrice

    bundler = MagicMock()
    bundler.get_user_operation_gas_price = AsyncMock(
        return_value=GasPrice(max_fee_per_gas=2_000_000_000, max_priority_fee_per_gas=1_000_000)
    )
    bundler.get_paymaster_stub_data = AsyncMock(return_value={"paymasterAndData": "0x"})
    bundler.get_paymaster_data = AsyncMock(return_value={"paymasterAndData": "0x"})
    bundler.sponsor_user_operation = AsyncMock(return_value={})
    bundler.estimate_user_operation_gas = AsyncMock(
        return_value={
            "callGasLimit": "0x10000",
            "verificationGasLimit": "0x20000",
            "preVerificationGas": "0x30000",
        }
    )
    bundler.send_user_operation = AsyncMock(return_value="0x" + "cc" * 32)
    bundler.get_user_operation_receipt = AsyncMock(return_value=None)
    bundler.forward = AsyncMock(return_value={"jsonrpc": "2.0", "id": 1, "result": "0x1"})
    bundler.close = AsyncMock()
    return bundler


@pytest.fixture
def relay_body():
    """Factory for a well-formed ERC-3009 relay request body"""

    def _make(**overrides):
        now = int(time.time())
        body = {
            "from": PAYER_ADDRESS,
            "to": RECIPIENT_ADDRESS,
            "value": "500000",
            "validAfter": str(now - 30),
            "validBefore": str(now + 3600),
            "nonce": "0x" + "cd" * 32,
            "signature": "0x" + "ab" * 64 + "1b",
            "token": "USDC",
        }
        body.update(overrides)
        return {k: v for k, v in body.items() if v is not None}

    return _make
