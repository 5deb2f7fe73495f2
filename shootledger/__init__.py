"""
shootledger - Source Package

Production accounting core for film shoots: budgets, expenses, vendors,
petty cash, crew, props and per-shoot-day schedules, plus the reports
derived from them.

DESIGN PRINCIPLES:
1. The store is the single source of truth
2. Validate before writing, never roll back
3. Reports recompute on every call
4. Every mutation is auditable
5. Adapters (CSV, PDF) only consume the core
"""

__version__ = "1.0.0"
__author__ = "shootledger Team"
