"""
nftsafe - Safe nftables ruleset activation with automatic rollback.

Applies a candidate ruleset to the live packet filter and restores the
previous ruleset unless the operator confirms connectivity in time.
"""

__version__ = "1.0.0"
__author__ = "nftsafe maintainers"
