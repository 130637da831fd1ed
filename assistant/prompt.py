from typing import Sequence

from receivables.aggregator import high_risk_entries, potential_bad_debt
from receivables.models import AuditSummary, LedgerEntry, ZERO
from receivables.report import format_currency

HIGH_RISK_SAMPLE_SIZE = 10

SYSTEM_PROMPT = """Role: You are "AuditGuard", a Senior AI Auditor and Data Analyst.
Task: Perform substantive audit procedures on Accounts Receivable.

Context Data:
- Total AR: {total_ar}
- High Risk Exposure: {over90}
- Top High Risk Customers: {high_risk}

Capabilities:
1. Analyze fraud patterns like 'Lapping' or bad debts.
2. If asked about a specific customer not in the top list, say you are checking the ledger (simulate check).
3. Speak professionally, concisely, like a consultant. Do NOT read long tables. Give executive summaries.
4. If finding balances > 90 days, suggest CKPN (Impairment Loss)."""


def high_risk_digest(entries: Sequence[LedgerEntry], limit: int = HIGH_RISK_SAMPLE_SIZE) -> str:
    return ", ".join(
        f"{e.customer_name} (Overdue: {e.days_overdue} days, Amount: {e.billed_amount})"
        for e in high_risk_entries(entries, limit)
    )


def build_system_instruction(entries: Sequence[LedgerEntry], summary: AuditSummary) -> str:
    return SYSTEM_PROMPT.format(
        total_ar=summary.total_ar,
        over90=summary.aging_buckets.over90,
        high_risk=high_risk_digest(entries),
    )


def answer_locally(question: str, entries: Sequence[LedgerEntry], summary: AuditSummary) -> str:
    """Keyword answer used when no hosted model is reachable."""
    text_lower = question.lower()

    for entry in entries:
        name = entry.customer_name.lower()
        if name and name in text_lower:
            rows = [e for e in entries if e.customer_name == entry.customer_name]
            outstanding = sum((e.net_outstanding for e in rows), ZERO)
            worst = max(rows, key=lambda e: e.risk_level.rank)
            return (
                f"{entry.customer_name} has {len(rows)} invoice(s) with {format_currency(outstanding)} outstanding. "
                f"Highest risk level is {worst.risk_level.value}, oldest invoice is "
                f"{max(e.days_overdue for e in rows)} days from cutoff."
            )

    if any(word in text_lower for word in ("ckpn", "provision", "impairment", "bad debt")):
        return (
            f"Based on the aging profile I recommend a CKPN provision of {format_currency(summary.bad_debt_provision)}, "
            f"50% of the net balance on {summary.count_high_risk} high-risk receivables. "
            f"Balances past 90 days total {format_currency(potential_bad_debt(summary))}."
        )

    if "lapping" in text_lower or "fraud" in text_lower:
        flagged = high_risk_digest(entries, limit=3)
        return (
            "Lapping indicators are round-million receipts applied to invoices more than 45 days old. "
            f"High-risk accounts to trace first: {flagged or 'none identified'}."
        )

    if any(word in text_lower for word in ("aging", "ageing", "overdue", "umur")):
        b = summary.aging_buckets
        return (
            f"Aging of net exposure {format_currency(summary.net_exposure)}: current {format_currency(b.current)}, "
            f"31-60 days {format_currency(b.days30)}, 61-90 days {format_currency(b.days60)}, "
            f"91-120 days {format_currency(b.days90)}, over 120 days {format_currency(b.over90)}."
        )

    return (
        f"Total receivables are {format_currency(summary.total_ar)} with {format_currency(summary.total_collections)} "
        f"collected, leaving a net exposure of {format_currency(summary.net_exposure)}. "
        f"{summary.count_high_risk} receivables are high risk; estimated CKPN is {format_currency(summary.bad_debt_provision)}."
    )
