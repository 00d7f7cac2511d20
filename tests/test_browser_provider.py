"""Tests for the browser capture page and provider."""

from __future__ import annotations

import socket
import threading

import pytest

from location_diary import browser
from location_diary.browser import (
    BrowserLocationProvider,
    CaptureSession,
    create_capture_app,
)
from location_diary.capture import PositionError


def _session():
    return CaptureSession(timeout_ms=10000, maximum_age_ms=0, high_accuracy=True)


def test_index_page_embeds_options_and_nonce():
    session = _session()
    client = create_capture_app(session).test_client()
    html = client.get("/").get_data(as_text=True)
    assert "getCurrentPosition" in html
    assert session.nonce in html
    assert "timeout: 10000" in html
    assert "maximumAge: 0" in html
    assert "enableHighAccuracy: true" in html


def test_position_post_resolves_session():
    session = _session()
    client = create_capture_app(session).test_client()
    resp = client.post(
        "/position",
        json={
            "nonce": session.nonce,
            "latitude": 35.6812,
            "longitude": 139.7671,
            "accuracy": 20,
            "taken_at": 1_709_337_000_000,
        },
    )
    assert resp.status_code == 200
    assert session.done.is_set()
    assert session.reading.latitude == 35.6812
    assert session.reading.accuracy == 20.0
    assert session.error is None


def test_error_post_records_platform_code():
    session = _session()
    client = create_capture_app(session).test_client()
    client.post("/position", json={"nonce": session.nonce, "error": 1, "message": "denied"})
    assert session.error.code == PositionError.PERMISSION_DENIED
    assert session.reading is None


def test_post_with_wrong_nonce_is_rejected():
    session = _session()
    client = create_capture_app(session).test_client()
    resp = client.post("/position", json={"nonce": "forged", "latitude": 1, "longitude": 2})
    assert resp.status_code == 400
    assert not session.done.is_set()


def test_second_post_is_ignored():
    session = _session()
    client = create_capture_app(session).test_client()
    client.post("/position", json={"nonce": session.nonce, "latitude": 1, "longitude": 2})
    client.post("/position", json={"nonce": session.nonce, "error": 3})
    assert session.error is None
    assert session.reading.longitude == 2.0


def test_bad_reading_is_position_unavailable():
    session = _session()
    client = create_capture_app(session).test_client()
    client.post("/position", json={"nonce": session.nonce, "latitude": "north"})
    assert session.error.code == PositionError.POSITION_UNAVAILABLE


class _FakeServer:
    def __init__(self):
        self.stopped = threading.Event()
        self.closed = False

    def serve_forever(self):
        self.stopped.wait(5)

    def shutdown(self):
        self.stopped.set()

    def server_close(self):
        self.closed = True


def test_provider_waits_for_browser_answer(monkeypatch):
    sessions = []
    server = _FakeServer()

    def fake_make_server(host, port, app):
        sessions.append(app)
        return server

    monkeypatch.setattr(browser, "make_server", fake_make_server)
    original_app = browser.create_capture_app

    def capturing_app(session):
        sessions.append(session)
        return original_app(session)

    monkeypatch.setattr(browser, "create_capture_app", capturing_app)

    def open_url(url):
        session = sessions[0]
        session.resolve({"latitude": 10.0, "longitude": 20.0, "accuracy": 3})

    provider = BrowserLocationProvider(port=5999, open_url=open_url)
    reading = provider.request_position(timeout=1, maximum_age=0, high_accuracy=True)
    assert (reading.latitude, reading.longitude, reading.accuracy) == (10.0, 20.0, 3.0)
    assert server.closed


def test_provider_times_out_without_answer(monkeypatch):
    server = _FakeServer()
    monkeypatch.setattr(browser, "make_server", lambda host, port, app: server)
    provider = BrowserLocationProvider(grace_seconds=0, open_url=lambda url: None)
    with pytest.raises(PositionError) as excinfo:
        provider.request_position(timeout=0.05, maximum_age=0, high_accuracy=True)
    assert excinfo.value.code == PositionError.TIMEOUT
    assert server.closed


@pytest.fixture
def busy_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()


def test_provider_reports_busy_port_as_position_unavailable(busy_port):
    opened = []
    provider = BrowserLocationProvider(
        host="127.0.0.1", port=busy_port, open_url=opened.append
    )
    with pytest.raises(PositionError) as excinfo:
        provider.request_position(timeout=0.05, maximum_age=0, high_accuracy=True)
    assert excinfo.value.code == PositionError.POSITION_UNAVAILABLE
    assert opened == []


def test_provider_reports_browser_launch_failure(monkeypatch):
    server = _FakeServer()
    monkeypatch.setattr(browser, "make_server", lambda host, port, app: server)

    def open_url(url):
        raise browser.webbrowser.Error("no runnable browser")

    provider = BrowserLocationProvider(open_url=open_url)
    with pytest.raises(PositionError) as excinfo:
        provider.request_position(timeout=1, maximum_age=0, high_accuracy=True)
    assert excinfo.value.code == PositionError.POSITION_UNAVAILABLE
    assert server.closed
