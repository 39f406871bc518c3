"""
Paid content
"""

from x402_relay.content.fortune import FALLBACK_FORTUNES, FORTUNE_RANKS, FortuneProvider

__all__ = ["FortuneProvider", "FALLBACK_FORTUNES", "FORTUNE_RANKS"]
