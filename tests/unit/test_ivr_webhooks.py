"""Unit tests for the IVR webhook endpoints."""
import pytest

from roofing_ivr.core.dependencies import get_call_flow
from roofing_ivr.core.errors import ConfigurationError
from roofing_ivr.main import app

BASE = "https://ivr.example.com"


class TestIVRWebhooks:
    """Test the endpoints the telephony platform calls."""

    def test_entry_returns_menu(self, test_client):
        response = test_client.post("/ivr/entry", data={"CallSid": "CA1"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert response.text.startswith('<?xml version="1.0" encoding="UTF-8"?><Response>')
        assert f'action="{BASE}/ivr/menu"' in response.text

    def test_entry_without_call_sid_is_rejected(self, test_client):
        response = test_client.post("/ivr/entry", data={})
        assert response.status_code == 400
        assert "CallSid" in response.text

    def test_menu_redirects(self, test_client):
        test_client.post("/ivr/entry", data={"CallSid": "CA1"})

        response = test_client.post("/ivr/menu", data={"CallSid": "CA1", "Digits": "2"})

        assert response.status_code == 200
        assert f'<Redirect method="POST">{BASE}/ivr/service/name</Redirect>' in response.text

    def test_menu_speech(self, test_client):
        test_client.post("/ivr/entry", data={"CallSid": "CA1"})
        response = test_client.post(
            "/ivr/menu", data={"CallSid": "CA1", "SpeechResult": "I need an estimate"}
        )
        assert f"{BASE}/ivr/sales/name" in response.text

    @pytest.mark.asyncio
    async def test_sales_steps_thread_state(self, test_client, call_flow):
        test_client.post("/ivr/entry", data={"CallSid": "CA1"})
        test_client.post("/ivr/menu", data={"CallSid": "CA1", "Digits": "1"})

        response = test_client.post("/ivr/sales/name", data={"CallSid": "CA1"})
        assert f'action="{BASE}/ivr/sales/name/save"' in response.text

        response = test_client.post(
            "/ivr/sales/name/save", data={"CallSid": "CA1", "SpeechResult": "Jane Doe "}
        )
        assert f'action="{BASE}/ivr/sales/address/save"' in response.text

        test_client.post(
            "/ivr/sales/address/save", data={"CallSid": "CA1", "SpeechResult": " 123 Main St"}
        )

        session = await call_flow.get_session("CA1")
        assert session.name == "Jane Doe"
        assert session.address == "123 Main St"
        assert session.department.label == "Sales"

    def test_unknown_department_or_step(self, test_client):
        assert test_client.post("/ivr/roofing/name", data={"CallSid": "CA1"}).status_code == 422
        assert test_client.post("/ivr/billing/address/save", data={"CallSid": "CA1"}).status_code == 404
        assert test_client.post("/ivr/sales/issue", data={"CallSid": "CA1"}).status_code == 404

    @pytest.mark.asyncio
    async def test_service_recording_and_transcription(
        self, test_client, call_flow, recording_store, summary_sink
    ):
        test_client.post("/ivr/entry", data={"CallSid": "CA1"})
        test_client.post("/ivr/menu", data={"CallSid": "CA1", "Digits": "2"})
        response = test_client.post(
            "/ivr/service/phone/save", data={"CallSid": "CA1", "Digits": "5550001111"}
        )
        assert f'<Record action="{BASE}/ivr/service/issue/save"' in response.text

        response = test_client.post(
            "/ivr/service/issue/save",
            data={"CallSid": "CA1", "RecordingSid": "REC1", "RecordingUrl": "https://rec/1"},
        )
        assert "<Hangup/>" in response.text
        assert await recording_store.get("REC1") is not None

        response = test_client.post(
            "/ivr/transcribe",
            data={"RecordingSid": "REC1", "TranscriptionText": "active leak, ceiling sagging"},
        )
        assert response.status_code == 200
        assert response.text == "OK"

        session = await call_flow.get_session("CA1")
        assert session.issue == "active leak, ceiling sagging"
        assert session.priority.value == "Urgent"
        assert await recording_store.get("REC1") is None
        assert len(summary_sink.lines) == 1

        # A retried transcription is still acknowledged and changes nothing
        response = test_client.post(
            "/ivr/transcribe", data={"RecordingSid": "REC1", "TranscriptionText": "other"}
        )
        assert response.status_code == 200
        assert len(summary_sink.lines) == 1

    def test_transcribe_unknown_recording_is_ok(self, test_client):
        response = test_client.post(
            "/ivr/transcribe", data={"RecordingSid": "nope", "TranscriptionText": "leak"}
        )
        assert response.status_code == 200
        assert response.text == "OK"

    def test_transcribe_without_recording_sid_is_rejected(self, test_client):
        response = test_client.post("/ivr/transcribe", data={"TranscriptionText": "leak"})
        assert response.status_code == 400

    def test_after_hours_flow(self, test_client, after_hours):
        response = test_client.post("/ivr/entry", data={"CallSid": "CA9"})
        assert f'action="{BASE}/ivr/afterhours"' in response.text

        response = test_client.post("/ivr/afterhours", data={"CallSid": "CA9"})
        assert f'<Record action="{BASE}/ivr/afterhours/save"' in response.text

        response = test_client.post(
            "/ivr/afterhours/save", data={"CallSid": "CA9", "RecordingSid": "REC9"}
        )
        assert "next business day" in response.text

    def test_strict_sessions_answers_with_apology(self, test_client, make_flow):
        strict = make_flow(strict_sessions=True)
        app.dependency_overrides[get_call_flow] = lambda: strict

        response = test_client.post(
            "/ivr/sales/name/save", data={"CallSid": "CA-unknown", "SpeechResult": "x"}
        )

        assert response.status_code == 200
        assert "could not find your call" in response.text
        assert response.text.endswith("<Hangup/></Response>")

    def test_unexpected_error_answers_with_apology(self, test_client, call_flow, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(call_flow, "route_menu", broken)

        response = test_client.post("/ivr/menu", data={"CallSid": "CA1", "Digits": "1"})

        assert response.status_code == 200
        assert "something went wrong" in response.text

    def test_missing_base_url_is_server_error(self, test_client):
        def misconfigured():
            raise ConfigurationError("SERVER_BASE_URL is not set")

        app.dependency_overrides[get_call_flow] = misconfigured

        response = test_client.post("/ivr/entry", data={"CallSid": "CA1"})
        assert response.status_code == 500


class TestHealth:
    """Test the health endpoint."""

    def test_health_counts_active_calls(self, test_client):
        assert test_client.get("/health").json() == {"status": "healthy", "active_calls": 0}

        test_client.post("/ivr/entry", data={"CallSid": "CA1"})

        assert test_client.get("/health").json() == {"status": "healthy", "active_calls": 1}
