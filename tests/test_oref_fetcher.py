import json

import pytest
import requests

from red_alert_feed.alerts.errors import FetchError, HistoryFetchError, ManualCheckError
from red_alert_feed.alerts.models import TrackedState
from red_alert_feed.alerts.watcher import AlertWatcher
from red_alert_feed.config import Settings, WatcherConfig
from red_alert_feed.sources.oref import OrefFetcher

from conftest import RecordingSink

ALERTS_URL = "https://example.test/alerts.json"
HISTORY_URL = "https://example.test/history.json"


class FakeResponse:
    def __init__(self, body=b"", status=200):
        self.content = body if isinstance(body, bytes) else body.encode("utf-8")
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error", response=self)


class FakeSession:
    """Maps url -> FakeResponse or exception; records calls."""
    def __init__(self, routes):
        self.routes = routes
        self.headers = {}
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        result = self.routes[url]
        if isinstance(result, Exception):
            raise result
        return result


def make_fetcher(routes, **kwargs):
    return OrefFetcher(ALERTS_URL, HISTORY_URL, session=FakeSession(routes), **kwargs)


ACTIVE = {
    "id": "133579530000000000",
    "cat": "1",
    "title": "ירי רקטות וטילים",
    "data": ["תל אביב - מרכז העיר", "רמת גן - מערב"],
    "desc": "היכנסו למרחב המוגן ושהו בו 10 דקות",
}


def test_active_alert_parsed_with_bom():
    body = "\ufeff" + json.dumps(ACTIVE, ensure_ascii=False)
    f = make_fetcher({ALERTS_URL: FakeResponse(body)})
    snap = f.fetch_current()

    assert snap.id == ACTIVE["id"]
    assert snap.category == "1"
    assert snap.locations == tuple(ACTIVE["data"])
    assert snap.description == ACTIVE["desc"]
    assert snap.observed_at.tzinfo is not None


@pytest.mark.parametrize("body", [b"", b"\xef\xbb\xbf", b"\xef\xbb\xbf\r\n", b"  \n", b"{}", b"[]"])
def test_no_alerts_bodies(body):
    f = make_fetcher({ALERTS_URL: FakeResponse(body)})
    assert f.fetch_current() is None


def test_missing_data_gives_empty_locations():
    payload = dict(ACTIVE, data=None)
    f = make_fetcher({ALERTS_URL: FakeResponse(json.dumps(payload))})
    assert f.fetch_current().locations == ()


def test_timeout_passed_and_raised_as_fetch_error():
    f = make_fetcher({ALERTS_URL: requests.Timeout("read timed out")}, timeout=30)
    with pytest.raises(FetchError) as excinfo:
        f.fetch_current()
    assert not isinstance(excinfo.value, HistoryFetchError)
    assert "Timed out after 30" in str(excinfo.value)
    assert f.session.calls == [(ALERTS_URL, 30)]


@pytest.mark.parametrize("result", [
    FakeResponse(b"Access denied", status=403),
    requests.ConnectionError("connection refused"),
    FakeResponse(b"<html>maintenance</html>"),
])
def test_failures_raise_fetch_error(result):
    f = make_fetcher({ALERTS_URL: result})
    with pytest.raises(FetchError) as excinfo:
        f.fetch_current()
    assert excinfo.value.url == ALERTS_URL


def test_history_is_truncated():
    records = [{"alertDate": f"2024-04-14 01:{i:02d}:00", "data": "חיפה"} for i in range(10)]
    f = make_fetcher({HISTORY_URL: FakeResponse(json.dumps(records))}, history_timeout=15, history_limit=5)

    assert f.fetch_history() == records[:5]
    assert f.session.calls == [(HISTORY_URL, 15)]


def test_history_single_object_and_empty():
    f = make_fetcher({HISTORY_URL: FakeResponse(json.dumps({"data": "חיפה"}))})
    assert f.fetch_history() == [{"data": "חיפה"}]

    f = make_fetcher({HISTORY_URL: FakeResponse(b"")})
    assert f.fetch_history() == []


def test_history_failure_is_history_fetch_error():
    f = make_fetcher({HISTORY_URL: FakeResponse(b"", status=502)})
    with pytest.raises(HistoryFetchError):
        f.fetch_history()


def test_from_settings_sets_headers():
    s = Settings.from_overrides(alerts_url=ALERTS_URL, history_url=HISTORY_URL,
                                http_timeout_secs=12, user_agent="ua-test/1.0")
    session = FakeSession({})
    f = OrefFetcher.from_settings(s, session=session)

    assert f.timeout == 12
    assert session.headers["User-Agent"] == "ua-test/1.0"
    assert session.headers["Referer"] == "https://www.oref.org.il/"


# ------- wrong-shaped alert objects -------

@pytest.mark.parametrize("payload", [
    {"id": "1", "data": 5},
    {"id": "1", "data": {"city": "חיפה"}},
])
def test_wrong_shape_is_fetch_error(payload):
    f = make_fetcher({ALERTS_URL: FakeResponse(json.dumps(payload, ensure_ascii=False))})
    with pytest.raises(FetchError) as excinfo:
        f.fetch_current()
    assert excinfo.value.url == ALERTS_URL
    assert "Malformed alert payload" in str(excinfo.value)


def _watcher_over(body):
    sink = RecordingSink()
    fetcher = make_fetcher({ALERTS_URL: FakeResponse(body)})
    return AlertWatcher(fetcher, sink, WatcherConfig()), sink


def test_wrong_shape_emits_error_event_on_tick():
    w, sink = _watcher_over('{"id": "1", "data": 5}')

    assert w.tick() is True
    assert sink.event_types == ["error"]
    assert sink.events[0].error_type == "api_error"
    assert w.state == TrackedState()


def test_wrong_shape_raises_manual_check_error():
    w, sink = _watcher_over('{"id": "1", "data": 5}')

    with pytest.raises(ManualCheckError) as excinfo:
        w.manual_check()
    assert isinstance(excinfo.value.__cause__, FetchError)
    assert sink.events == []
