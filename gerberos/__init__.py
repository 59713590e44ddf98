"""Building blocks for banning IP addresses through ipset or nftables."""

__version__ = "0.1.0"

__all__ = [
    "aggregate",
    "backends",
    "durations",
    "errors",
    "executor",
    "match",
    "occurrences",
]