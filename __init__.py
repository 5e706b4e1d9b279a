"""
Per-identity performance ledger: attempt/success/failure counters, timed
sessions and submitted scores, with notifications for off-chain indexing.
"""

__version__ = "0.1.0"
