from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Optional

from .models import AuditSummary, MemorandumSection
from .parser import DEFAULT_CUTOFF_DATE

MEMO_TITLE = "INTERNAL AUDIT MEMORANDUM"
MEMO_TO = "Chief Financial Officer"
MEMO_FROM = "AuditGuard AI System"


def format_currency(value: Decimal) -> str:
    """Rupiah in Indonesian notation, e.g. ``Rp 15.000.000,00``."""
    value = Decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 4)
        amount = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        sign = "-" if amount < 0 else ""
        whole, cents = f"{abs(amount):.2f}".split(".")
    grouped = f"{int(whole):,}".replace(",", ".")
    return f"{sign}Rp {grouped},{cents}"


def over90_share(summary: AuditSummary) -> Decimal:
    """Percent of net exposure sitting in the > 120 day bucket, 1 decimal."""
    if summary.net_exposure <= 0:
        return Decimal("0.0")
    share = summary.aging_buckets.over90 / summary.net_exposure * 100
    return share.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


@dataclass
class AuditMemorandum:
    title: str
    reference: str
    prepared_on: date
    addressee: str
    author: str
    sections: list[MemorandumSection] = field(default_factory=list)

    def render_text(self) -> str:
        lines = [
            self.title,
            f"Ref: {self.reference}",
            "",
            f"Date: {self.prepared_on.strftime('%d %B %Y').lstrip('0')}",
            f"To: {self.addressee}",
            f"From: {self.author}",
        ]
        for section in self.sections:
            lines += ["", section.heading.upper(), "-" * len(section.heading)]
            lines += section.paragraphs
        lines += [
            "",
            "Prepared By: AuditGuard AI  [ Digital Signature ]",
            "Reviewed By: Audit Partner  ______________________",
        ]
        return "\n".join(lines) + "\n"


def build_memorandum(
    summary: AuditSummary,
    prepared_on: Optional[date] = None,
    cutoff: date = DEFAULT_CUTOFF_DATE,
) -> AuditMemorandum:
    prepared_on = prepared_on or date.today()
    period_end = cutoff.strftime("%B %d, %Y")

    sections = [
        MemorandumSection(heading="1. Executive Summary", paragraphs=[
            f"We have performed substantive audit procedures on the Accounts Receivable ledger as of {period_end}. "
            f"The total gross receivable exposure is {format_currency(summary.total_ar)}. "
            f"Our analysis indicates a net risk exposure of {format_currency(summary.net_exposure)} after collections.",
        ]),
        MemorandumSection(heading="2. Valuation Assertion & Impairment", paragraphs=[
            f"A significant portion of the receivables ({over90_share(summary)}%) is overdue by more than 90 days. "
            "Based on the aging profile and risk assessment, we recommend a provision for bad debts (CKPN) of approximately:",
            format_currency(summary.bad_debt_provision),
        ]),
        MemorandumSection(heading="3. Key Audit Matters (KAM)", paragraphs=[
            f"High Risk Concentration: There are {summary.count_high_risk} customers identified as High Risk due to "
            "significant overdue balances or anomalies in payment patterns (potential lapping).",
            'Confirmation Status: Several material balances returned "No Reply" on positive confirmation requests. '
            "Alternative procedures (tracing subsequent payments) were performed.",
        ]),
        MemorandumSection(heading="4. Recommendations", paragraphs=[
            "1. Immediately initiate legal collection proceedings for accounts overdue > 120 days.",
            "2. Segregate duties between cash receipt handling and AR ledger recording to mitigate lapping risks.",
            "3. Review credit limits for customers appearing in the High Risk category.",
        ]),
    ]

    return AuditMemorandum(
        title=MEMO_TITLE,
        reference=f"AR-{cutoff.year}-FINAL",
        prepared_on=prepared_on,
        addressee=MEMO_TO,
        author=MEMO_FROM,
        sections=sections,
    )
