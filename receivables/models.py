from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from risk import RiskLevel


LEDGER_COLUMNS = (
    "Customer_ID",
    "Nama_Pelanggan",
    "No_Invoice",
    "Tanggal_Invoice",
    "Tanggal_Jatuh_Tempo",
    "Jumlah_Tagihan",
    "Pembayaran_Diterima",
    "Tanggal_Bayar",
    "Status_Konfirmasi",
)

REQUIRED_HEADER_TOKENS = ("Customer_ID", "Nama_Pelanggan", "Jumlah_Tagihan", "Tanggal_Invoice")

ZERO = Decimal("0")


class LedgerEntry(BaseModel):
    """One receivable row after parsing. Derived fields are fixed at parse time."""

    customer_id: str
    customer_name: str
    invoice_number: str
    invoice_date: str
    due_date: str
    billed_amount: Decimal = ZERO
    amount_received: Decimal = ZERO
    payment_date: str = ""
    confirmation_status: str = ""
    days_overdue: int
    risk_level: RiskLevel

    model_config = ConfigDict(frozen=True)

    @property
    def net_outstanding(self) -> Decimal:
        return self.billed_amount - self.amount_received


class SkippedRow(BaseModel):
    line_number: int
    reason: str
    raw: str

    model_config = ConfigDict(frozen=True)


class AgingBuckets(BaseModel):
    current: Decimal = ZERO
    days30: Decimal = ZERO
    days60: Decimal = ZERO
    days90: Decimal = ZERO
    over90: Decimal = ZERO

    model_config = ConfigDict(frozen=True)

    @property
    def total(self) -> Decimal:
        return self.current + self.days30 + self.days60 + self.days90 + self.over90


class AuditSummary(BaseModel):
    total_ar: Decimal = ZERO
    total_collections: Decimal = ZERO
    net_exposure: Decimal = ZERO
    count_high_risk: int = 0
    bad_debt_provision: Decimal = Field(default=ZERO, description="Estimated CKPN")
    aging_buckets: AgingBuckets = Field(default_factory=AgingBuckets)

    model_config = ConfigDict(frozen=True)


class AuditSession(BaseModel):
    id: UUID
    source_name: str
    cutoff_date: date
    loaded_at: datetime
    entries: tuple[LedgerEntry, ...]
    summary: AuditSummary
    skipped_rows: tuple[SkippedRow, ...] = ()

    model_config = ConfigDict(frozen=True)


class UploadLedgerRequest(BaseModel):
    csv_text: str = Field(..., description="Raw CSV text of the receivables ledger")
    source_name: str = Field(default="ledger.csv")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "csv_text": (
                "Customer_ID,Nama_Pelanggan,No_Invoice,Tanggal_Invoice,Tanggal_Jatuh_Tempo,"
                "Jumlah_Tagihan,Pembayaran_Diterima,Tanggal_Bayar,Status_Konfirmasi\n"
                "C1,Acme,INV1,2023-08-01,2023-09-01,15000000,0,,No Reply\n"
            ),
            "source_name": "ar_ledger_2023.csv",
        }
    })


class SessionResponse(BaseModel):
    session_id: UUID
    source_name: str
    cutoff_date: date
    loaded_at: datetime
    entry_count: int
    summary: AuditSummary
    skipped_rows: list[SkippedRow]
    message: str


class FindingsResponse(BaseModel):
    session_id: UUID
    risk: str
    search: str
    entries: list[LedgerEntry]
    total_count: int


class DebtorExposure(BaseModel):
    customer_name: str
    net_outstanding: Decimal


class AgingSlice(BaseModel):
    label: str
    amount: Decimal


class OverviewResponse(BaseModel):
    session_id: UUID
    net_exposure: Decimal
    potential_bad_debt: Decimal
    count_high_risk: int
    bad_debt_provision: Decimal
    aging: list[AgingSlice]
    top_debtors: list[DebtorExposure]


class MemorandumSection(BaseModel):
    heading: str
    paragraphs: list[str]


class MemorandumResponse(BaseModel):
    session_id: UUID
    title: str
    reference: str
    prepared_on: date
    sections: list[MemorandumSection]
    text: str


class AskRequest(BaseModel):
    question: str = Field(..., min_length=1)


class InsightResponse(BaseModel):
    session_id: UUID
    question: str
    answer: str
    source: Literal["groq", "local"]


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)


class ChatLogEntry(BaseModel):
    role: Literal["user", "model"]
    text: str


class ChatResponse(BaseModel):
    session_id: UUID
    reply: Optional[str] = None
    transcript: list[ChatLogEntry]
