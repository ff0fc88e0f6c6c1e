"""
Personal Ledger - Source Package

A spreadsheet-backed bookkeeping engine for personal finances:
transactions, credit cards, savings goals and bill reminders, plus the
dashboard derived from them.

DESIGN PRINCIPLES:
1. Derived values come from the transaction log, never the other way round
2. Reads never fail the dashboard; writes report errors instead of raising
3. A failed multi-step update is undone, not left half applied
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Ledger Team"
