from decimal import Decimal
from typing import Iterable, Optional

from risk import RiskLevel

from .models import AgingBuckets, AgingSlice, AuditSummary, DebtorExposure, LedgerEntry, ZERO

PROVISION_RATE = Decimal("0.5")

AGING_LABELS = (
    ("current", "Current"),
    ("days30", "31-60 Days"),
    ("days60", "61-90 Days"),
    ("days90", "91-120 Days"),
    ("over90", "> 120 Days"),
)


def aging_bucket_for(days_overdue: int) -> str:
    if days_overdue <= 30:
        return "current"
    if days_overdue <= 60:
        return "days30"
    if days_overdue <= 90:
        return "days60"
    if days_overdue <= 120:
        return "days90"
    return "over90"


def calculate_summary(entries: Iterable[LedgerEntry]) -> AuditSummary:
    """Fold ledger entries into the audit summary in a single pass.

    Totals cover every entry. Net exposure, aging buckets, the high-risk count
    and the CKPN provision only count entries that still have a positive
    balance outstanding.
    """
    total_ar = ZERO
    total_collections = ZERO
    net_exposure = ZERO
    count_high_risk = 0
    provision = ZERO
    buckets = {key: ZERO for key, _ in AGING_LABELS}

    for entry in entries:
        total_ar += entry.billed_amount
        total_collections += entry.amount_received

        net = entry.net_outstanding
        if net > 0:
            net_exposure += net
            buckets[aging_bucket_for(entry.days_overdue)] += net

            if entry.risk_level == RiskLevel.HIGH:
                count_high_risk += 1
                provision += net * PROVISION_RATE

    return AuditSummary(
        total_ar=total_ar,
        total_collections=total_collections,
        net_exposure=net_exposure,
        count_high_risk=count_high_risk,
        bad_debt_provision=provision,
        aging_buckets=AgingBuckets(**buckets),
    )


def potential_bad_debt(summary: AuditSummary) -> Decimal:
    return summary.aging_buckets.days90 + summary.aging_buckets.over90


def aging_series(summary: AuditSummary) -> list[AgingSlice]:
    buckets = summary.aging_buckets
    return [
        AgingSlice(label=label, amount=getattr(buckets, key))
        for key, label in AGING_LABELS
        if getattr(buckets, key) > 0
    ]


def top_debtors(entries: Iterable[LedgerEntry], limit: int = 5) -> list[DebtorExposure]:
    by_customer: dict[str, Decimal] = {}
    for entry in entries:
        by_customer[entry.customer_name] = by_customer.get(entry.customer_name, ZERO) + entry.net_outstanding
    ranked = sorted(by_customer.items(), key=lambda item: item[1], reverse=True)
    return [DebtorExposure(customer_name=name, net_outstanding=value) for name, value in ranked[:limit]]


def high_risk_entries(entries: Iterable[LedgerEntry], limit: Optional[int] = None) -> list[LedgerEntry]:
    flagged = [e for e in entries if e.risk_level == RiskLevel.HIGH]
    return flagged if limit is None else flagged[:limit]


def filter_findings(
    entries: Iterable[LedgerEntry],
    risk: Optional[str] = None,
    search: str = "",
) -> list[LedgerEntry]:
    """Risk filter ("All", "High", "Medium", "Low") plus a case-insensitive
    search over customer name and invoice number."""
    level = None if not risk or risk == "All" else RiskLevel(risk)
    needle = search.lower()
    return [
        e for e in entries
        if (level is None or e.risk_level == level)
        and (needle in e.customer_name.lower() or needle in e.invoice_number.lower())
    ]
