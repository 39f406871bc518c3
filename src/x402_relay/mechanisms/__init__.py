"""
x402-relay Mechanisms - gasless payment execution paths
"""

from x402_relay.mechanisms import exact
from x402_relay.mechanisms import userop

__all__ = ["exact", "userop"]
