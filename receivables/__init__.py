"""
Accounts-Receivable Audit Toolkit

This module provides:
- Positional CSV ledger parsing with overdue-day and risk derivation
- Single-pass aggregation into totals, aging buckets and CKPN provision
- Immutable audit sessions with an atomic reset
- Findings queries, dashboard overview figures and the audit memorandum
"""

from .aggregator import calculate_summary
from .errors import LedgerError, LedgerFormatError, SessionNotFoundError
from .models import (
    AgingBuckets,
    AuditSession,
    AuditSummary,
    LedgerEntry,
    SkippedRow,
)
from .parser import DEFAULT_CUTOFF_DATE, ParsedLedger, parse_csv, parse_ledger
from .service import AuditService

__all__ = [
    "AgingBuckets",
    "AuditSession",
    "AuditSummary",
    "AuditService",
    "DEFAULT_CUTOFF_DATE",
    "LedgerEntry",
    "LedgerError",
    "LedgerFormatError",
    "ParsedLedger",
    "SessionNotFoundError",
    "SkippedRow",
    "calculate_summary",
    "parse_csv",
    "parse_ledger",
]
