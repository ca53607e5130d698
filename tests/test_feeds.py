"""Unit tests for the NeoWs and APOD clients with a mocked HTTP session."""

from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests

from neo_alerts.feeds import (
    ApodClient,
    EnrichmentError,
    FeedHTTPError,
    FeedResponseError,
    FeedTimeoutError,
    InvalidDateRangeError,
    NeoFeedClient,
    parse_detection,
)
from tests.helpers import make_feed_object


def _response(status=200, payload=None, json_error=False, reason="OK"):
    response = Mock()
    response.status_code = status
    response.reason = reason
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    s = Mock(spec=requests.Session)
    s.headers = {}
    return s


class TestNasaApiClient:
    """Shared HTTP behavior, exercised through NeoFeedClient."""

    def test_sets_user_agent(self, session):
        NeoFeedClient("key", user_agent="NeoAlerts/Test", session=session)
        assert session.headers["User-Agent"] == "NeoAlerts/Test"

    @pytest.mark.parametrize("kwargs", [{"api_key": ""}, {"api_key": "k", "timeout": 0}, {"api_key": "k", "timeout": 301}])
    def test_invalid_construction(self, kwargs):
        with pytest.raises(ValueError):
            NeoFeedClient(**kwargs)

    def test_api_key_and_timeout_sent(self, session):
        session.get.return_value = _response(payload={"near_earth_objects": {}})
        client = NeoFeedClient("secret-key", timeout=12, session=session)

        client.fetch(date(2025, 11, 1), date(2025, 11, 8))

        _, kwargs = session.get.call_args
        assert kwargs["params"] == {
            "start_date": "2025-11-01",
            "end_date": "2025-11-08",
            "api_key": "secret-key",
        }
        assert kwargs["timeout"] == 12

    def test_api_key_not_logged(self, session, caplog):
        session.get.return_value = _response(payload={"near_earth_objects": {}})

        with caplog.at_level("DEBUG"):
            NeoFeedClient("secret-key", session=session).fetch(date(2025, 11, 1), date(2025, 11, 2))

        for record in caplog.records:
            assert "secret-key" not in record.getMessage()
            assert "secret-key" not in str(getattr(record, "params", ""))

    def test_timeout(self, session):
        session.get.side_effect = requests.exceptions.Timeout()

        with pytest.raises(FeedTimeoutError):
            NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 2))

    def test_connection_error_is_redacted(self, session):
        session.get.side_effect = requests.exceptions.ConnectionError("failed for ?api_key=secret-key")

        with pytest.raises(FeedHTTPError) as exc_info:
            NeoFeedClient("secret-key", session=session).fetch(date(2025, 11, 1), date(2025, 11, 2))

        assert exc_info.value.status_code == 0
        assert "secret-key" not in str(exc_info.value)

    @pytest.mark.parametrize("status", [400, 403, 429, 500, 503])
    def test_http_error_status(self, session, status):
        session.get.return_value = _response(status=status, reason="Error")

        with pytest.raises(FeedHTTPError) as exc_info:
            NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 2))

        assert exc_info.value.status_code == status

    def test_invalid_json(self, session):
        session.get.return_value = _response(json_error=True)

        with pytest.raises(FeedResponseError):
            NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 2))


class TestNeoFeedClient:
    """Tests for NeoFeedClient.fetch()."""

    def test_parses_objects_in_date_order(self, session):
        session.get.return_value = _response(
            payload={
                "element_count": 3,
                "near_earth_objects": {
                    "2025-11-03": [make_feed_object(neo_id="3", name="(C)", approach="2025-11-03")],
                    "2025-11-01": [
                        make_feed_object(neo_id="1", name="(A)", approach="2025-11-01"),
                        make_feed_object(neo_id="2", name="(B)", hazardous=False, approach="2025-11-01"),
                    ],
                },
            }
        )

        detections = NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 8))

        assert [d.name for d in detections] == ["(A)", "(B)", "(C)"]
        first = detections[0]
        assert first.is_potentially_hazardous is True
        assert first.close_approaches[0].close_approach_date == date(2025, 11, 1)
        assert first.close_approaches[0].miss_distance_km == Decimal("4512345.6789")
        assert first.diameter.average_m == pytest.approx(215.3)
        assert detections[1].is_potentially_hazardous is False

    def test_missing_near_earth_objects_is_empty(self, session):
        session.get.return_value = _response(payload={"element_count": 0})

        assert NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 2)) == []

    @pytest.mark.parametrize("payload", [[1, 2], {"near_earth_objects": []}, {"near_earth_objects": {"2025-11-01": {}}}])
    def test_unexpected_shape(self, session, payload):
        session.get.return_value = _response(payload=payload)

        with pytest.raises(FeedResponseError):
            NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 2))

    def test_malformed_object_is_skipped(self, session):
        session.get.return_value = _response(
            payload={"near_earth_objects": {"2025-11-01": ["junk", {"name": "no id"}, make_feed_object()]}}
        )

        detections = NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 2))

        assert len(detections) == 1

    def test_reversed_range_rejected_before_request(self, session):
        with pytest.raises(InvalidDateRangeError):
            NeoFeedClient("k", session=session).fetch(date(2025, 11, 8), date(2025, 11, 1))
        session.get.assert_not_called()

    def test_range_over_seven_days_rejected(self, session):
        with pytest.raises(InvalidDateRangeError):
            NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 9))
        session.get.assert_not_called()

    def test_single_day_range_allowed(self, session):
        session.get.return_value = _response(payload={"near_earth_objects": {}})
        assert NeoFeedClient("k", session=session).fetch(date(2025, 11, 1), date(2025, 11, 1)) == []

    def test_health_check_ok(self, session, caplog):
        session.get.return_value = _response(payload={"near_earth_objects": {}})

        with caplog.at_level("INFO"):
            assert NeoFeedClient("k", session=session).check_health(date(2025, 11, 4)) is True

        params = session.get.call_args.kwargs["params"]
        assert (params["start_date"], params["end_date"]) == ("2025-11-04", "2025-11-04")
        assert any(getattr(r, "event", None) == "feed.health.ok" for r in caplog.records)

    @pytest.mark.parametrize(
        "outcome",
        [
            _response(status=503, reason="Service Unavailable"),
            _response(json_error=True),
            requests.exceptions.Timeout("read timed out"),
        ],
    )
    def test_health_check_failure_returns_false(self, session, outcome, caplog):
        if isinstance(outcome, Exception):
            session.get.side_effect = outcome
        else:
            session.get.return_value = outcome

        with caplog.at_level("WARNING"):
            assert NeoFeedClient("k", session=session).check_health(date(2025, 11, 4)) is False

        assert any(getattr(r, "event", None) == "feed.health.failed" for r in caplog.records)

    def test_health_check_defaults_to_today(self, session):
        session.get.return_value = _response(payload={"near_earth_objects": {}})

        NeoFeedClient("k", session=session).check_health()

        params = session.get.call_args.kwargs["params"]
        assert params["start_date"] == params["end_date"]


class TestParseDetection:
    """Tests for parse_detection() on partial feed objects."""

    def test_missing_diameter_and_approaches(self):
        detection = parse_detection({"id": "1", "name": "(A)", "is_potentially_hazardous_asteroid": True})

        assert detection.close_approaches == []
        assert detection.diameter is None

    def test_unparseable_values_become_none(self):
        raw = make_feed_object()
        raw["close_approach_data"][0]["close_approach_date"] = "someday"
        raw["close_approach_data"][0]["miss_distance"] = {"kilometers": "far"}
        raw["estimated_diameter"]["meters"]["estimated_diameter_max"] = "big"

        detection = parse_detection(raw)

        approach = detection.close_approaches[0]
        assert approach.close_approach_date is None
        assert approach.miss_distance_km is None
        assert detection.diameter.is_complete is False

    def test_non_dict_is_skipped(self):
        assert parse_detection(None) is None


class TestApodClient:
    """Tests for ApodClient."""

    def test_image_entry(self, session):
        session.get.return_value = _response(
            payload={
                "date": "2025-11-04",
                "title": "Pillars of Creation",
                "url": "https://apod.nasa.gov/apod/image/pillars.jpg",
                "explanation": "Columns of gas and dust.",
                "media_type": "image",
                "copyright": "\nNASA\n",
            }
        )

        enrichment = ApodClient("k", session=session).fetch_for_date(date(2025, 11, 4))

        assert enrichment.title == "Pillars of Creation"
        assert enrichment.image_url == "https://apod.nasa.gov/apod/image/pillars.jpg"
        assert enrichment.picture_date == date(2025, 11, 4)
        assert enrichment.copyright == "NASA"
        assert session.get.call_args.kwargs["params"]["date"] == "2025-11-04"

    def test_video_entry_returns_none(self, session):
        session.get.return_value = _response(
            payload={"title": "Launch", "url": "https://youtube.com/x", "media_type": "video"}
        )

        assert ApodClient("k", session=session).fetch_for_date(date(2025, 11, 4)) is None

    def test_fetch_today_uses_clock(self, session):
        session.get.return_value = _response(payload={"media_type": "video"})

        ApodClient("k", session=session, today=lambda: date(2025, 1, 2)).fetch_today()

        assert session.get.call_args.kwargs["params"]["date"] == "2025-01-02"

    @pytest.mark.parametrize(
        "response",
        [
            _response(status=500, reason="Server Error"),
            _response(json_error=True),
            _response(payload=["not", "an", "object"]),
            _response(payload={"code": 400, "msg": "Date must be between Jun 16, 1995 and today"}),
            _response(payload={"media_type": "image", "title": "No URL"}),
        ],
    )
    def test_failures_raise_enrichment_error(self, session, response):
        session.get.return_value = response

        with pytest.raises(EnrichmentError):
            ApodClient("k", session=session).fetch_for_date(date(2025, 11, 4))

    def test_timeout_raises_enrichment_error(self, session):
        session.get.side_effect = requests.exceptions.Timeout()

        with pytest.raises(EnrichmentError):
            ApodClient("k", session=session).fetch_today()
