"""
Analytics Package

Read-only report computation over the production store.
"""

from shootledger.analytics.engine import ReportEngine, delay_reason, percent

__all__ = [
    "ReportEngine",
    "delay_reason",
    "percent",
]
