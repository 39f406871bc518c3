"""
Tests for OperationBuilder.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from x402_relay.abi import calculate_method_id
from x402_relay.abi import ERC20_ABI, SMART_WALLET_ABI
from x402_relay.exceptions import (
    BadRequest,
    BundlerRejected,
    UnsupportedNetworkError,
    UpstreamUnavailable,
)
from x402_relay.mechanisms.userop import DUMMY_SIGNATURE, OperationBuilder, OperationState
from x402_relay.tokens import USDC_ADDRESS

SENDER = "0x2222222222222222222222222222222222222222"
RECIPIENT = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"
ENTRY_POINT_V06 = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"
ENTRY_POINT_V07 = "0x0000000071727De22E5E9d8BAf0edAc6f37da032"


@pytest.fixture
def read_client():
    client = MagicMock()
    client.read_contract = AsyncMock(return_value=7)
    return client


@pytest.fixture
def builder(mock_bundler, read_client):
    return OperationBuilder(mock_bundler, read_client=read_client)


class TestEncoding:
    def test_selectors(self):
        assert calculate_method_id(ERC20_ABI, "transfer") == "a9059cbb"
        assert calculate_method_id(SMART_WALLET_ABI, "execute") == "b61d27f6"

    def test_transfer_call_data(self):
        call_data = OperationBuilder.encode_transfer_call(USDC_ADDRESS, RECIPIENT, 1_500_000)
        assert call_data.startswith("0xb61d27f6")
        body = call_data[10:]
        # execute(target, value, data): target word, zero value, then dynamic bytes
        assert body[24:64].lower() == USDC_ADDRESS[2:].lower()
        assert int(body[64:128], 16) == 0
        assert "a9059cbb" in body
        assert hex(1_500_000)[2:] in body
        assert RECIPIENT[2:].lower() in body.lower()


class TestPrepareTransfer:
    @pytest.mark.anyio
    async def test_unsponsored_uses_fixed_gas(self, builder, mock_bundler, read_client):
        prepared = await builder.prepare_transfer(SENDER, RECIPIENT, "0.5")

        op = prepared.user_operation
        assert prepared.entry_point == ENTRY_POINT_V06
        assert prepared.state == OperationState.UNSIGNED.value
        assert op["nonce"] == "7"
        assert op["initCode"] == "0x"
        assert op["paymasterAndData"] == "0x"
        assert op["callGasLimit"] == "150000"
        assert op["verificationGasLimit"] == "500000"
        assert op["preVerificationGas"] == "80000"
        assert op["maxFeePerGas"] == "2000000000"
        assert op["maxPriorityFeePerGas"] == "1000000"
        assert "signature" not in op
        assert prepared.transfer["rawAmount"] == "500000"
        assert prepared.transfer["token"] == USDC_ADDRESS

        kwargs = read_client.read_contract.call_args.kwargs
        assert kwargs["contract_address"] == ENTRY_POINT_V06
        assert kwargs["method"] == "getNonce"
        assert kwargs["args"] == [SENDER, 0]
        mock_bundler.estimate_user_operation_gas.assert_not_called()

    @pytest.mark.anyio
    async def test_stub_data_alone_is_not_signed_over(self, builder, mock_bundler):
        mock_bundler.get_paymaster_stub_data.return_value = {
            "paymasterAndData": "0xstubpaymaster",
            "callGasLimit": "0x30d40",
        }
        prepared = await builder.prepare_transfer(SENDER, RECIPIENT, "0.5")

        assert prepared.state == OperationState.UNSIGNED.value
        assert prepared.user_operation["paymasterAndData"] == "0x"
        assert prepared.user_operation["callGasLimit"] == "150000"

        stub_op, entry_point, chain_id = mock_bundler.get_paymaster_stub_data.call_args.args
        assert stub_op["signature"] == DUMMY_SIGNATURE
        assert entry_point == ENTRY_POINT_V06
        assert chain_id == 84532

    @pytest.mark.anyio
    async def test_final_data_after_stub(self, builder, mock_bundler):
        mock_bundler.get_paymaster_stub_data.return_value = {
            "paymasterAndData": "0xstubpaymaster",
            "callGasLimit": "0x30d40",
        }
        mock_bundler.get_paymaster_data.return_value = {"paymasterAndData": "0xfinalpaymaster"}

        prepared = await builder.prepare_transfer(SENDER, RECIPIENT, "0.5")

        assert prepared.state == OperationState.SPONSORED.value
        assert prepared.user_operation["paymasterAndData"] == "0xfinalpaymaster"
        assert prepared.user_operation["callGasLimit"] == "0x30d40"
        assert prepared.user_operation["verificationGasLimit"] == "500000"
        assert "signature" not in prepared.user_operation

        data_op, entry_point, chain_id = mock_bundler.get_paymaster_data.call_args.args
        assert data_op["signature"] == DUMMY_SIGNATURE
        assert data_op["callGasLimit"] == "0x30d40"
        assert data_op["paymasterAndData"] == "0x"
        assert (entry_point, chain_id) == (ENTRY_POINT_V06, 84532)

    @pytest.mark.anyio
    async def test_final_stub_used_directly(self, builder, mock_bundler):
        mock_bundler.get_paymaster_stub_data.return_value = {
            "paymasterAndData": "0xsponsored",
            "isFinal": True,
        }
        prepared = await builder.prepare_transfer(SENDER, RECIPIENT, "0.5")

        assert prepared.state == OperationState.SPONSORED.value
        assert prepared.user_operation["paymasterAndData"] == "0xsponsored"
        mock_bundler.get_paymaster_data.assert_not_called()

    @pytest.mark.anyio
    @pytest.mark.parametrize("method", ["get_paymaster_stub_data", "get_paymaster_data"])
    @pytest.mark.parametrize(
        "error", [BundlerRejected("no sponsor"), UpstreamUnavailable("timeout")]
    )
    async def test_sponsorship_failure_leaves_unsigned(self, builder, mock_bundler, method, error):
        mock_bundler.get_paymaster_stub_data.return_value = {"paymasterAndData": "0xstub"}
        getattr(mock_bundler, method).side_effect = error
        prepared = await builder.prepare_transfer(SENDER, RECIPIENT, "1")
        assert prepared.state == OperationState.UNSIGNED.value
        assert prepared.user_operation["paymasterAndData"] == "0x"

    @pytest.mark.anyio
    async def test_missing_fields(self, builder):
        with pytest.raises(BadRequest):
            await builder.prepare_transfer(SENDER, None, "1")

    @pytest.mark.anyio
    async def test_too_many_decimals(self, builder):
        with pytest.raises(BadRequest):
            await builder.prepare_transfer(SENDER, RECIPIENT, "0.0000001")

    @pytest.mark.anyio
    async def test_token_on_other_chain(self, builder):
        with pytest.raises(UnsupportedNetworkError):
            await builder.prepare_transfer(SENDER, RECIPIENT, "1", token="JPYC")

    @pytest.mark.anyio
    async def test_gas_price_rejection_propagates(self, builder, mock_bundler):
        mock_bundler.get_user_operation_gas_price.side_effect = BundlerRejected("bad key")
        with pytest.raises(BundlerRejected):
            await builder.prepare_transfer(SENDER, RECIPIENT, "1")


class TestPrepareCall:
    @pytest.mark.anyio
    async def test_estimated_and_sponsored(self, builder, mock_bundler, read_client):
        mock_bundler.sponsor_user_operation.return_value = {
            "paymaster": "0x" + "44" * 20,
            "paymasterVerificationGasLimit": "0x1",
            "paymasterPostOpGasLimit": "0x2",
            "paymasterData": "0xdata",
            "preVerificationGas": "0x40000",
        }
        prepared = await builder.prepare_call(SENDER, "0xb61d27f6", nonce="0x3")

        op = prepared.user_operation
        assert prepared.entry_point == ENTRY_POINT_V07
        assert prepared.state == OperationState.SPONSORED.value
        assert op["nonce"] == "0x3"
        assert op["callGasLimit"] == "0x10000"
        assert op["verificationGasLimit"] == "0x20000"
        assert op["preVerificationGas"] == "0x40000"
        assert op["paymaster"] == "0x" + "44" * 20
        assert op["paymasterData"] == "0xdata"
        assert "signature" not in op
        read_client.read_contract.assert_not_called()

        estimate_op, entry_point = mock_bundler.estimate_user_operation_gas.call_args.args
        assert estimate_op["signature"] == DUMMY_SIGNATURE
        assert "factory" not in estimate_op
        assert entry_point == ENTRY_POINT_V07

    @pytest.mark.anyio
    async def test_reads_nonce_when_absent(self, builder, read_client):
        prepared = await builder.prepare_call(SENDER, "0xb61d27f6")
        assert prepared.user_operation["nonce"] == "0x7"
        assert read_client.read_contract.call_args.kwargs["contract_address"] == ENTRY_POINT_V07

    @pytest.mark.anyio
    async def test_estimate_rejection_falls_back_to_fixed_limits(self, builder, mock_bundler):
        mock_bundler.estimate_user_operation_gas.side_effect = BundlerRejected("AA23 reverted")
        prepared = await builder.prepare_call(SENDER, "0xb61d27f6", nonce=0)
        op = prepared.user_operation
        assert op["callGasLimit"] == hex(150000)
        assert op["verificationGasLimit"] == hex(500000)
        assert op["preVerificationGas"] == hex(80000)
        assert prepared.state == OperationState.UNSIGNED.value

    @pytest.mark.anyio
    async def test_caller_signature_used_for_estimation(self, builder, mock_bundler):
        await builder.prepare_call(SENDER, "0xb61d27f6", nonce=0, signature="0xwebauthn")
        estimate_op, _ = mock_bundler.estimate_user_operation_gas.call_args.args
        assert estimate_op["signature"] == "0xwebauthn"

    @pytest.mark.anyio
    async def test_missing_call_data(self, builder):
        with pytest.raises(BadRequest):
            await builder.prepare_call(SENDER, None)

    @pytest.mark.anyio
    @pytest.mark.parametrize("nonce", ["not-a-number", "-1", -1])
    async def test_malformed_nonce(self, builder, mock_bundler, nonce):
        with pytest.raises(BadRequest):
            await builder.prepare_call(SENDER, "0xb61d27f6", nonce=nonce)
        mock_bundler.estimate_user_operation_gas.assert_not_called()

    @pytest.mark.anyio
    async def test_uppercase_hex_nonce(self, builder):
        prepared = await builder.prepare_call(SENDER, "0xb61d27f6", nonce="0X1F")
        assert prepared.user_operation["nonce"] == "0x1f"
