import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from risk import RiskEngine, default_engine

from .errors import LedgerFormatError
from .models import LedgerEntry, SkippedRow, LEDGER_COLUMNS, REQUIRED_HEADER_TOKENS, ZERO

logger = logging.getLogger(__name__)

# Audit period year-end used when no cutoff is supplied.
DEFAULT_CUTOFF_DATE = date(2023, 12, 31)

_SECONDS_PER_DAY = 86400
_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass(frozen=True)
class ParsedLedger:
    entries: list[LedgerEntry] = field(default_factory=list)
    skipped_rows: list[SkippedRow] = field(default_factory=list)


def _parse_amount(value: str) -> Decimal:
    """Read the leading number of a cell; anything unreadable counts as 0."""
    match = _LEADING_NUMBER.match(value)
    if not match:
        return ZERO
    try:
        amount = Decimal(match.group(1))
    except InvalidOperation:
        return ZERO
    if not amount.is_finite():
        return ZERO
    # Magnitudes outside the double range read as 0.
    as_float = float(amount)
    if math.isinf(as_float) or (as_float == 0 and amount != 0):
        return ZERO
    return amount


def _parse_date(value: str) -> Optional[datetime]:
    value = value.strip()
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    # Aware timestamps are compared on their UTC wall clock.
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - parsed.utcoffset()
    return parsed


def days_between(cutoff: date, invoice_date: datetime) -> int:
    cutoff_at = datetime(cutoff.year, cutoff.month, cutoff.day)
    seconds = abs((cutoff_at - invoice_date).total_seconds())
    return math.ceil(seconds / _SECONDS_PER_DAY)


def _check_header(header_line: str) -> None:
    headers = [h.strip() for h in header_line.split(",")]
    missing = [token for token in REQUIRED_HEADER_TOKENS if not any(token in h for h in headers)]
    if missing:
        raise LedgerFormatError(
            f"Invalid CSV Format. Missing required audit columns: {', '.join(missing)}"
        )


def parse_ledger(
    csv_text: str,
    cutoff: date = DEFAULT_CUTOFF_DATE,
    engine: Optional[RiskEngine] = None,
) -> ParsedLedger:
    """Parse raw ledger CSV into typed entries.

    Columns are read by position, not by header name; the header is only
    checked for the presence of the required column tokens. Rows whose
    invoice date cannot be parsed are left out and reported in
    ``skipped_rows``.
    """
    engine = engine or default_engine()
    lines = [line for line in csv_text.split("\n") if line.strip() != ""]
    if not lines:
        raise LedgerFormatError("Invalid CSV Format. The ledger is empty.")

    _check_header(lines[0])

    result = ParsedLedger()
    for line_number, line in enumerate(lines[1:], start=2):
        cells = [cell.strip() for cell in line.split(",")]
        cells += [""] * (len(LEDGER_COLUMNS) - len(cells))
        values = dict(zip(LEDGER_COLUMNS, cells))

        invoice_at = _parse_date(values["Tanggal_Invoice"])
        if invoice_at is None:
            logger.warning("Skipping ledger line %d: invalid invoice date %r", line_number, values["Tanggal_Invoice"])
            result.skipped_rows.append(SkippedRow(line_number=line_number, reason="invalid invoice date", raw=line.rstrip("\r")))
            continue

        billed_amount = _parse_amount(values["Jumlah_Tagihan"])
        amount_received = _parse_amount(values["Pembayaran_Diterima"])
        days_overdue = days_between(cutoff, invoice_at)
        status = values["Status_Konfirmasi"]

        risk_level = engine.classify({
            "days_overdue": days_overdue,
            "billed_amount": billed_amount,
            "amount_received": amount_received,
            "confirmation_status": status,
        })

        result.entries.append(LedgerEntry(
            customer_id=values["Customer_ID"],
            customer_name=values["Nama_Pelanggan"],
            invoice_number=values["No_Invoice"],
            invoice_date=values["Tanggal_Invoice"],
            due_date=values["Tanggal_Jatuh_Tempo"],
            billed_amount=billed_amount,
            amount_received=amount_received,
            payment_date=values["Tanggal_Bayar"],
            confirmation_status=status,
            days_overdue=days_overdue,
            risk_level=risk_level,
        ))

    logger.debug("Parsed %d ledger entries, skipped %d", len(result.entries), len(result.skipped_rows))
    return result


def parse_csv(csv_text: str, cutoff: date = DEFAULT_CUTOFF_DATE) -> list[LedgerEntry]:
    return parse_ledger(csv_text, cutoff).entries
