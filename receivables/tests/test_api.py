"""
API Tests for the audit endpoints

Tests cover:
1. Upload and session retrieval
2. Header rejection on upload
3. Findings, overview and report routes
4. Assistant insight and chat routes (offline)
5. Reset and unknown sessions
"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from assistant import AuditAssistant, LiveConnector, LocalLiveConnector
from receivables.api import create_app
from receivables.settings import Settings


SAMPLE_LEDGER = (
    "Customer_ID,Nama_Pelanggan,No_Invoice,Tanggal_Invoice,Tanggal_Jatuh_Tempo,"
    "Jumlah_Tagihan,Pembayaran_Diterima,Tanggal_Bayar,Status_Konfirmasi\n"
    "C1,Acme,INV1,2023-08-01,2023-09-01,15000000,0,,No Reply\n"
    "C2,Borneo Niaga,INV2,2023-12-01,2024-01-01,4000000,1000000,2023-12-20,Confirmed\n"
)
MISSING_ID = "00000000-0000-0000-0000-000000000000"


class ClosedConnector(LiveConnector):
    """Hands out sessions that were already closed by another request."""

    def connect(self, config):
        session = LocalLiveConnector([], None).connect(config)
        session.close()
        return session


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    app = create_app(settings=Settings(), assistant=AuditAssistant())
    return TestClient(app)


@pytest.fixture
def session_id(client):
    response = client.post("/sessions", json={"csv_text": SAMPLE_LEDGER, "source_name": "ar.csv"})
    assert response.status_code == 201
    return response.json()["session_id"]


class TestUpload:
    """Tests for ledger upload."""

    def test_health(self, client):
        """Test the health route reports the offline assistant."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["assistant"] == "local"

    def test_upload_returns_summary(self, client):
        """Test that an upload returns the computed summary."""
        response = client.post("/sessions", json={"csv_text": SAMPLE_LEDGER})

        assert response.status_code == 201
        body = response.json()
        assert body["entry_count"] == 2
        assert Decimal(body["summary"]["net_exposure"]) == Decimal("18000000")
        assert Decimal(body["summary"]["bad_debt_provision"]) == Decimal("7500000")
        assert Decimal(body["summary"]["aging_buckets"]["over90"]) == Decimal("15000000")
        assert body["summary"]["count_high_risk"] == 1

    def test_upload_with_bad_header_rejected(self, client):
        """Test that a header missing required columns is a 400."""
        response = client.post("/sessions", json={"csv_text": "Customer_ID,Nama_Pelanggan\nC1,Acme\n"})

        assert response.status_code == 400
        assert "Missing required audit columns" in response.json()["detail"]

    def test_get_session(self, client, session_id):
        """Test fetching a stored session."""
        response = client.get(f"/sessions/{session_id}")

        assert response.status_code == 200
        assert response.json()["source_name"] == "ar.csv"


class TestViews:
    """Tests for findings, overview and report routes."""

    def test_entries(self, client, session_id):
        """Test the raw entry listing."""
        entries = client.get(f"/sessions/{session_id}/entries").json()

        assert [e["risk_level"] for e in entries] == ["High", "Low"]
        assert entries[0]["days_overdue"] == 152

    def test_findings_filter(self, client, session_id):
        """Test risk filter through the query string."""
        body = client.get(f"/sessions/{session_id}/findings", params={"risk": "High"}).json()

        assert body["total_count"] == 1
        assert body["entries"][0]["customer_name"] == "Acme"

    def test_findings_rejects_unknown_risk(self, client, session_id):
        """Test that an unsupported risk filter fails validation."""
        response = client.get(f"/sessions/{session_id}/findings", params={"risk": "Critical"})

        assert response.status_code == 422

    def test_overview(self, client, session_id):
        """Test the overview route."""
        body = client.get(f"/sessions/{session_id}/overview").json()

        assert body["top_debtors"][0]["customer_name"] == "Acme"
        assert Decimal(body["potential_bad_debt"]) == Decimal("15000000")

    def test_report(self, client, session_id):
        """Test the memorandum route."""
        body = client.get(f"/sessions/{session_id}/report").json()

        assert body["title"] == "INTERNAL AUDIT MEMORANDUM"
        assert "Rp 7.500.000,00" in body["text"]


class TestAssistantRoutes:
    """Tests for the insight and chat routes without a hosted model."""

    def test_insight_answers_locally(self, client, session_id):
        """Test that insight falls back to the local answer."""
        response = client.post(f"/sessions/{session_id}/insight", json={"question": "How much CKPN?"})

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "local"
        assert "Rp 7.500.000,00" in body["answer"]

    def test_chat_keeps_transcript(self, client, session_id):
        """Test that chat turns accumulate in one live session."""
        client.post(f"/sessions/{session_id}/chat", json={"message": "Tell me about Acme"})
        body = client.post(f"/sessions/{session_id}/chat", json={"message": "What about aging?"}).json()

        assert [m["role"] for m in body["transcript"]] == ["user", "model", "user", "model"]
        assert body["transcript"][1]["text"].startswith("Acme has 1 invoice(s)")
        assert body["reply"] == body["transcript"][3]["text"]

    def test_closed_live_session_is_conflict(self, monkeypatch):
        """Test that a chat closed under the request answers 409 instead of failing."""
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        client = TestClient(create_app(settings=Settings(), assistant=AuditAssistant(), live_connector=ClosedConnector()))
        session_id = client.post("/sessions", json={"csv_text": SAMPLE_LEDGER}).json()["session_id"]

        response = client.post(f"/sessions/{session_id}/chat", json={"message": "Tell me about Acme"})

        assert response.status_code == 409
        assert response.json()["detail"] == "Live session is closed"

    def test_chat_unknown_session_is_404(self, client):
        """Test that chatting on a missing session answers 404."""
        response = client.post(f"/sessions/{MISSING_ID}/chat", json={"message": "hello"})

        assert response.status_code == 404


class TestReset:
    """Tests for reset and unknown sessions."""

    def test_reset_then_lookup_is_404(self, client, session_id):
        """Test that a reset session is gone."""
        assert client.delete(f"/sessions/{session_id}").status_code == 204
        assert client.get(f"/sessions/{session_id}").status_code == 404

    @pytest.mark.parametrize("method,path", [
        ("get", "/sessions/{id}"),
        ("get", "/sessions/{id}/findings"),
        ("get", "/sessions/{id}/overview"),
        ("get", "/sessions/{id}/report"),
        ("delete", "/sessions/{id}"),
    ])
    def test_unknown_session_is_404(self, client, method, path):
        """Test that every session route answers 404 for an unknown id."""
        response = getattr(client, method)(path.format(id=MISSING_ID))

        assert response.status_code == 404


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
