import json

import pytest
import requests

from location_diary.errors import (
    EmptyQueueError,
    EndpointNotConfiguredError,
    HttpStatusError,
    MalformedResponseError,
    NetworkFailureError,
)
from location_diary.models import DeliveryMode
from location_diary.sync_client import SyncClient

URL = "https://api.example/prod/track"
DIARY_URL = "https://api.example/prod/diary"
NOW = 1_709_340_000_000


class FakeResp:
    """Minimal fake response matching needed parts of requests.Response."""

    def __init__(self, status_code=200, data=None, text=None):
        self.status_code = status_code
        self._data = data
        self._text = text
        self.url = URL

    def json(self):
        return json.loads(self.text)

    @property
    def text(self):
        if self._text is not None:
            return self._text
        if self._data is None:
            return ""
        return json.dumps(self._data)

    @property
    def content(self):
        return self.text.encode()


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _client(session, **kwargs):
    kwargs.setdefault("endpoint", URL)
    kwargs.setdefault("diary_endpoint", "")
    kwargs.setdefault("api_key", "")
    return SyncClient(
        lambda: "web-abc12345", session=session, clock=lambda: NOW, timeout=7, **kwargs
    )


def test_batch_sends_one_envelope_and_returns_address(three_points):
    session = FakeSession(FakeResp(200, data={"address": "Tokyo", "saved": 3}))
    outcome = _client(session).sync(three_points, DeliveryMode.BATCH)

    assert len(session.calls) == 1
    call = session.calls[0]
    assert call["url"] == URL
    assert call["timeout"] == 7
    assert call["headers"]["Content-Type"] == "application/json"
    assert "x-api-key" not in call["headers"]
    body = call["json"]
    assert body["deviceId"] == "web-abc12345"
    assert body["diaryCreatedAt"] == "2024-03-02T00:40:00.000Z"
    assert body["locations"][0] == {
        "lat": 35.6812,
        "lon": 139.7671,
        "timestamp": "2024-03-01T23:50:00.000Z",
    }
    assert body["locations"][2]["accuracy"] == 8.0
    assert outcome.all_delivered
    assert outcome.delivered == (True, True, True)
    assert outcome.address == "Tokyo"
    assert outcome.response["saved"] == 3


def test_batch_is_the_default_mode(three_points):
    session = FakeSession(FakeResp(200, data={}))
    outcome = _client(session).sync(three_points)
    assert outcome.mode is DeliveryMode.BATCH


def test_batch_prefers_diary_endpoint(three_points):
    session = FakeSession(FakeResp(200))
    _client(session, diary_endpoint=DIARY_URL).sync(three_points, "batch")
    assert session.calls[0]["url"] == DIARY_URL


def test_api_key_header_when_configured(three_points):
    session = FakeSession(FakeResp(200))
    _client(session, api_key="secret-key").sync(three_points)
    assert session.calls[0]["headers"]["x-api-key"] == "secret-key"


def test_single_sends_only_latest_point(three_points):
    session = FakeSession(FakeResp(201, data={"address": "Osaka"}))
    outcome = _client(session).sync(three_points, DeliveryMode.SINGLE)
    assert session.calls[0]["json"] == {
        "deviceId": "web-abc12345",
        "timestamp": three_points[-1].timestamp,
        "latitude": 34.0,
        "longitude": 139.7671,
        "accuracy": 8.0,
    }
    assert outcome.submitted == (three_points[-1],)
    assert outcome.delivered == (True,)
    assert outcome.address == "Osaka"


def test_single_http_500_is_failure(three_points):
    session = FakeSession(FakeResp(500, data={"message": "boom"}))
    outcome = _client(session).sync(three_points, DeliveryMode.SINGLE)
    assert outcome.delivered == (False,)
    assert isinstance(outcome.error, HttpStatusError)
    assert outcome.error.status_code == 500
    assert outcome.error.detail == "boom"


def test_non_2xx_without_json_body_is_failure(three_points):
    session = FakeSession(FakeResp(403, text="<html>Forbidden</html>"))
    outcome = _client(session).sync(three_points)
    assert not outcome.any_delivered
    assert outcome.error.status_code == 403


def test_2xx_with_empty_or_non_json_body_is_success(three_points):
    session = FakeSession(FakeResp(204), FakeResp(200, text="OK"))
    client = _client(session)
    assert client.sync(three_points).all_delivered
    outcome = client.sync(three_points)
    assert outcome.all_delivered
    assert outcome.response == {}
    assert outcome.address is None


def test_2xx_with_non_object_json_is_malformed(three_points):
    session = FakeSession(FakeResp(200, data=["unexpected"]))
    outcome = _client(session).sync(three_points)
    assert not outcome.any_delivered
    assert isinstance(outcome.error, MalformedResponseError)


def test_network_failure_is_reported_not_raised(three_points):
    session = FakeSession(requests.exceptions.ConnectionError("refused"))
    outcome = _client(session).sync(three_points)
    assert outcome.delivered == (False, False, False)
    assert isinstance(outcome.error, NetworkFailureError)


def test_sequential_continues_past_failures(three_points):
    session = FakeSession(
        FakeResp(200, data={"address": "Chiyoda"}),
        FakeResp(502),
        FakeResp(200, data={"address": "Minato"}),
    )
    outcome = _client(session).sync(three_points, DeliveryMode.SEQUENTIAL)
    assert [c["json"]["latitude"] for c in session.calls] == [35.6812, 35.0, 34.0]
    assert outcome.delivered == (True, False, True)
    assert outcome.delivered_count == 2
    assert outcome.failed_points == [three_points[1]]
    assert outcome.address == "Minato"
    assert [e.status_code for e in outcome.errors] == [502]


def test_empty_queue_is_rejected_before_any_request():
    session = FakeSession()
    with pytest.raises(EmptyQueueError):
        _client(session).sync([], DeliveryMode.BATCH)
    assert session.calls == []


def test_missing_endpoint_is_rejected_before_any_request(three_points):
    session = FakeSession()
    client = _client(session, endpoint="", diary_endpoint="")
    assert not client.configured
    with pytest.raises(EndpointNotConfiguredError):
        client.sync(three_points)
    assert session.calls == []


def test_no_internal_retry_on_failure(three_points):
    session = FakeSession(FakeResp(503), FakeResp(200))
    _client(session).sync(three_points, DeliveryMode.SINGLE)
    assert len(session.calls) == 1
