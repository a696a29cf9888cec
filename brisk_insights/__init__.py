"""
Brisk Insights - Source Package

A personal-finance tracker: accounts, categories, transactions and
monthly budgets stored in a managed backend, with dashboards and a
conversational assistant that answers from the user's own numbers.

DESIGN PRINCIPLES:
1. The backend owns persistence, auth and row-level security
2. Balance changes only happen through the balance-adjusting procedures
3. Fail visibly, never leave the UI unusable
4. Every user action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Brisk Insights Team"
