"""
Tests for BundlerClient JSON-RPC handling
"""

import json

import httpx
import pytest

from x402_relay.exceptions import BundlerRejected, UpstreamUnavailable
from x402_relay.utils.bundler import BundlerClient

BUNDLER_URL = "https://api.pimlico.io/v2/base-sepolia/rpc?apikey=test"


def _client_with(handler) -> BundlerClient:
    client = BundlerClient(BUNDLER_URL)
    client._http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


@pytest.mark.anyio
async def test_call_returns_result_and_increments_id():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0xabc"})

    client = _client_with(handler)
    assert await client.send_user_operation({"sender": "0x1"}, "0xEP") == "0xabc"
    await client.get_user_operation_receipt("0xabc")
    await client.close()

    assert seen[0]["method"] == "eth_sendUserOperation"
    assert seen[0]["params"] == [{"sender": "0x1"}, "0xEP"]
    assert seen[1]["method"] == "eth_getUserOperationReceipt"
    assert seen[1]["id"] == seen[0]["id"] + 1


@pytest.mark.anyio
async def test_rpc_error_raises_bundler_rejected():
    def handler(request):
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32500, "message": "AA25 invalid nonce"}},
        )

    client = _client_with(handler)
    with pytest.raises(BundlerRejected) as exc_info:
        await client.send_user_operation({}, "0xEP")
    assert exc_info.value.details == "AA25 invalid nonce"
    assert exc_info.value.code == -32500
    assert exc_info.value.method == "eth_sendUserOperation"


@pytest.mark.anyio
async def test_http_error_without_rpc_error():
    client = _client_with(lambda request: httpx.Response(503, json={"message": "down"}))
    with pytest.raises(UpstreamUnavailable):
        await client.call("eth_chainId", [])


@pytest.mark.anyio
async def test_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    client = _client_with(handler)
    with pytest.raises(UpstreamUnavailable):
        await client.call("eth_chainId", [])


@pytest.mark.anyio
async def test_non_json_body():
    client = _client_with(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(UpstreamUnavailable):
        await client.call("eth_chainId", [])


@pytest.mark.anyio
async def test_gas_price_tier():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "result": {
                    "slow": {"maxFeePerGas": "0x1", "maxPriorityFeePerGas": "0x1"},
                    "fast": {"maxFeePerGas": "0x77359400", "maxPriorityFeePerGas": "0xf4240"},
                },
            },
        )

    price = await _client_with(handler).get_user_operation_gas_price()
    assert price.max_fee_per_gas == 2_000_000_000
    assert price.max_priority_fee_per_gas == 1_000_000


@pytest.mark.anyio
async def test_malformed_gas_price():
    client = _client_with(lambda request: httpx.Response(200, json={"id": 1, "result": {}}))
    with pytest.raises(UpstreamUnavailable):
        await client.get_user_operation_gas_price()


@pytest.mark.anyio
async def test_stub_data_params():
    captured = {}

    def handler(request):
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"id": 1, "result": {"paymasterAndData": "0x1234"}})

    result = await _client_with(handler).get_paymaster_stub_data({"sender": "0x1"}, "0xEP", 84532)
    assert result == {"paymasterAndData": "0x1234"}
    assert captured["method"] == "pm_getPaymasterStubData"
    assert captured["params"] == [{"sender": "0x1"}, "0xEP", "0x14a34", {}]


@pytest.mark.anyio
async def test_final_data_params():
    captured = {}

    def handler(request):
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"id": 1, "result": {"paymasterAndData": "0xabcd"}})

    result = await _client_with(handler).get_paymaster_data(
        {"sender": "0x1"}, "0xEP", 84532, context={"sponsorshipPolicyId": "sp_1"}
    )
    assert result == {"paymasterAndData": "0xabcd"}
    assert captured["method"] == "pm_getPaymasterData"
    assert captured["params"] == [{"sender": "0x1"}, "0xEP", "0x14a34", {"sponsorshipPolicyId": "sp_1"}]


@pytest.mark.anyio
async def test_forward_returns_raw_reply():
    reply = {"jsonrpc": "2.0", "id": 9, "error": {"code": -32601, "message": "no such method"}}
    client = _client_with(lambda request: httpx.Response(200, json=reply))
    assert await client.forward({"jsonrpc": "2.0", "id": 9, "method": "foo", "params": []}) == reply
