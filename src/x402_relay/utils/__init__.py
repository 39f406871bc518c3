"""
x402-relay Utility Functions
"""

from x402_relay.utils.bundler import BundlerClient, GasPrice
from x402_relay.utils.evm_client import EvmReadClient, resolve_provider_uri
from x402_relay.utils.hexutil import hex_to_bytes, strip_0x, to_hex, to_int
from x402_relay.utils.polling import PollOutcome, PollPolicy, poll_until

__all__ = [
    "BundlerClient",
    "GasPrice",
    "EvmReadClient",
    "resolve_provider_uri",
    "hex_to_bytes",
    "strip_0x",
    "to_hex",
    "to_int",
    "PollOutcome",
    "PollPolicy",
    "poll_until",
]
