from fastapi import FastAPI

import observability
from observability import REDACTED, SERVICE_NAME, add_service_name, redact_contact_details


def test_contact_details_are_masked():
    event = redact_contact_details(
        None,
        "info",
        {
            "event": "Candidate unlocked",
            "candidate_id": 7,
            "contact_email": "jane.doe@example.com",
            "contact_phone": "+49 30 1234567",
            "website_url": None,
        },
    )

    assert event["contact_email"] == REDACTED
    assert event["contact_phone"] == REDACTED
    assert event["website_url"] is None
    assert event["candidate_id"] == 7
    assert event["event"] == "Candidate unlocked"


def test_service_name_is_added_once():
    assert add_service_name(None, "info", {"event": "x"})["service"] == SERVICE_NAME
    assert add_service_name(None, "info", {"event": "x", "service": "worker"})["service"] == "worker"


def test_tracing_is_off_by_default(monkeypatch):
    monkeypatch.delenv("ENABLE_XRAY", raising=False)

    assert observability._setup_tracing(FastAPI()) is False
    assert observability._setup_tracing(None) is False


def test_tracing_skipped_without_sdk(monkeypatch):
    monkeypatch.setenv("ENABLE_XRAY", "1")
    monkeypatch.setattr(observability, "xray_recorder", None)

    assert observability._setup_tracing(FastAPI()) is False


def test_tracing_attaches_middleware(monkeypatch):
    calls = []

    class Recorder:
        def configure(self, **kwargs):
            calls.append(kwargs)

    class Middleware:
        def __init__(self, app, recorder=None, segment_name=None):
            self.app = app

    monkeypatch.setenv("ENABLE_XRAY", "1")
    monkeypatch.setattr(observability, "xray_recorder", Recorder())
    monkeypatch.setattr(observability, "patch_all", lambda: calls.append("patched"))
    monkeypatch.setattr(observability, "XRayMiddleware", Middleware)
    app = FastAPI()

    assert observability._setup_tracing(app) is True
    assert calls == ["patched", {"service": observability.SEGMENT_NAME}]
    assert [m.cls for m in app.user_middleware] == [Middleware]
