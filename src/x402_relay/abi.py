"""
Shared ABI definitions for smart contracts
"""

import json
from typing import Any, List

# ERC-3009 token ABI (v, r, s variant of transferWithAuthorization)
TRANSFER_WITH_AUTHORIZATION_ABI: List[dict[str, Any]] = [
    {
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
            {"name": "validAfter", "type": "uint256"},
            {"name": "validBefore", "type": "uint256"},
            {"name": "nonce", "type": "bytes32"},
            {"name": "v", "type": "uint8"},
            {"name": "r", "type": "bytes32"},
            {"name": "s", "type": "bytes32"},
        ],
        "name": "transferWithAuthorization",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "authorizer", "type": "address"},
            {"name": "nonce", "type": "bytes32"},
        ],
        "name": "authorizationState",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
]

# ERC20 Token ABI
ERC20_ABI: List[dict[str, Any]] = [
    {
        "name": "transfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

# Coinbase Smart Wallet execute(address target, uint256 value, bytes data)
SMART_WALLET_ABI: List[dict[str, Any]] = [
    {
        "name": "execute",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {"name": "target", "type": "address"},
            {"name": "value", "type": "uint256"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    },
]

# ERC-4337 EntryPoint nonce accessor (identical in v0.6 and v0.7)
ENTRY_POINT_ABI: List[dict[str, Any]] = [
    {
        "name": "getNonce",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "sender", "type": "address"},
            {"name": "key", "type": "uint192"},
        ],
        "outputs": [{"name": "nonce", "type": "uint256"}],
    },
]

# Chainlink AggregatorV3Interface (subset)
AGGREGATOR_V3_ABI: List[dict[str, Any]] = [
    {
        "name": "latestRoundData",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "roundId", "type": "uint80"},
            {"name": "answer", "type": "int256"},
            {"name": "startedAt", "type": "uint256"},
            {"name": "updatedAt", "type": "uint256"},
            {"name": "answeredInRound", "type": "uint80"},
        ],
    },
    {
        "name": "decimals",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
]


def get_transfer_with_authorization_abi_json() -> str:
    return json.dumps(TRANSFER_WITH_AUTHORIZATION_ABI)


def _find_function(abi: List[dict[str, Any]], method_name: str) -> dict[str, Any]:
    for item in abi:
        if item.get("type") == "function" and item.get("name") == method_name:
            return item
    raise ValueError(f"Function '{method_name}' not found in ABI")


def _get_type_string(param: dict[str, Any]) -> str:
    """Canonical type string of an ABI parameter, expanding tuples recursively"""
    param_type = param["type"]
    if param_type == "tuple":
        components = param.get("components", [])
        if not components:
            return "tuple"
        return f"({','.join(_get_type_string(c) for c in components)})"
    return param_type


def get_function_signature(abi: List[dict[str, Any]], method_name: str) -> str:
    """Full signature string, e.g. ``transfer(address,uint256)``"""
    func_abi = _find_function(abi, method_name)
    input_types = [_get_type_string(inp) for inp in func_abi.get("inputs", [])]
    return f"{method_name}({','.join(input_types)})"


def calculate_method_id(abi: List[dict[str, Any]], method_name: str) -> str:
    """4-byte selector (Keccak-256 of the signature) as 8 hex characters.

    Example:
        >>> calculate_method_id(ERC20_ABI, "transfer")
        'a9059cbb'
    """
    from Crypto.Hash import keccak

    k = keccak.new(digest_bits=256)
    k.update(get_function_signature(abi, method_name).encode())
    return k.hexdigest()[:8]


def encode_function_call(abi: List[dict[str, Any]], method_name: str, args: List[Any]) -> str:
    """ABI-encode a call as 0x-prefixed calldata (selector + arguments)."""
    from eth_abi import encode

    func_abi = _find_function(abi, method_name)
    input_types = [_get_type_string(inp) for inp in func_abi.get("inputs", [])]
    return "0x" + calculate_method_id(abi, method_name) + encode(input_types, args).hex()
