"""
Personal Ledger - Source Package

Records money movements across accounts in several currencies,
classifies them into categories, and derives running balances and
periodic statistics from the recorded history.

DESIGN PRINCIPLES:
1. The root transaction carries the authoritative total
2. Every multi-step write is one transactional unit
3. Stored balances are maintained with the writes that change them
4. Derived numbers are recomputed from history, never guessed
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Ledger Team"
