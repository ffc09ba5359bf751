"""
Finance Tracker - Source Package

Client-side core of a personal-finance tracker: accounts, transactions,
credit cards, budgets and savings goals kept in sync with a remote backend.

DESIGN PRINCIPLES:
1. The server response is the only source of truth for stored records
2. Fail early, fail visibly (every failure reaches the user)
3. Paired writes either complete or are compensated
4. Aggregates are derived, never stored
5. The backend gateway is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
