"""Tests for the Universalis feed client."""

import datetime as dt

import pytest
import requests

from daily_homily.errors import FetchError, ParseError
from daily_homily.feed import FeedClient, feed_date, feed_url, parse_feed, unwrap_jsonp


class TestUrl:
    def test_feed_date_is_zero_padded(self):
        assert feed_date(dt.date(2025, 7, 6)) == "20250706"

    def test_feed_url(self):
        assert feed_url(dt.date(2025, 7, 26)) == (
            "https://universalis.com/United.States/20250726/jsonpmass.js?callback=universalisCallback"
        )

    def test_feed_url_region_and_base(self):
        url = feed_url(dt.date(2025, 1, 2), region="England", base_url="http://localhost:8000/")
        assert url.startswith("http://localhost:8000/England/20250102/")


class TestUnwrap:
    def test_unwraps_callback(self):
        assert unwrap_jsonp('cb({"day": "x"});') == {"day": "x"}

    def test_parentheses_inside_payload(self):
        body = 'universalisCallback({"source": "Psalm 49(50):1"});\n'
        assert unwrap_jsonp(body) == {"source": "Psalm 49(50):1"}

    @pytest.mark.parametrize("body", [
        "",
        '{"day": "x"}',
        'cb({"day": "x"}',
        'cb)"day"(',
        "cb();",
    ])
    def test_malformed_envelope(self, body):
        with pytest.raises(ParseError):
            unwrap_jsonp(body)

    def test_bad_json_inside(self):
        with pytest.raises(ParseError, match="not valid JSON"):
            unwrap_jsonp("cb({day: x});")

    def test_non_object_payload(self):
        with pytest.raises(ParseError, match="must be an object"):
            unwrap_jsonp("cb([1, 2]);")


class TestParseFeed:
    def test_well_formed(self, sample_payload):
        record = parse_feed(sample_payload)
        assert record.day.startswith("Saints Joachim and Anne")
        assert record.first_reading.source == "Exodus 24:3&#x2010;8"
        assert record.psalm.text.startswith("<div")
        assert record.gospel.source == "<i>Matthew</i> 13:24&#x2010;30"
        assert record.second_reading is None
        assert record.gospel_acclamation.source == "James 1:21"
        assert record.copyright == "Readings &#169; Universalis Publishing"

    def test_second_reading_kept(self, sample_payload):
        sample_payload["Mass_R2"] = {"source": "Romans 8:28", "text": "<div>We know...</div>"}
        assert parse_feed(sample_payload).second_reading.source == "Romans 8:28"

    @pytest.mark.parametrize("missing", ["day", "Mass_R1", "Mass_Ps", "Mass_G"])
    def test_missing_required(self, sample_payload, missing):
        del sample_payload[missing]
        with pytest.raises(ParseError, match="does not match schema"):
            parse_feed(sample_payload)

    def test_reading_without_text(self, sample_payload):
        del sample_payload["Mass_G"]["text"]
        with pytest.raises(ParseError, match="Mass_G"):
            parse_feed(sample_payload)

    def test_wrong_type(self, sample_payload):
        sample_payload["day"] = 7
        with pytest.raises(ParseError):
            parse_feed(sample_payload)


class TestFeedClient:
    def test_fetch(self, make_session, sample_jsonp):
        session = make_session(sample_jsonp)
        client = FeedClient(session, timeout=5)

        record = client.fetch(dt.date(2025, 7, 26))

        assert record.first_reading.source == "Exodus 24:3&#x2010;8"
        url = session.get.call_args.args[0]
        assert "/United.States/20250726/jsonpmass.js" in url
        assert session.get.call_args.kwargs["timeout"] == 5

    def test_fetch_today_uses_today(self, make_session, sample_jsonp, monkeypatch):
        session = make_session(sample_jsonp)
        client = FeedClient(session)
        monkeypatch.setattr(client, "today", lambda: dt.date(2024, 12, 25))

        client.fetch_today()

        assert "/20241225/" in session.get.call_args.args[0]

    def test_http_error(self, make_session):
        client = FeedClient(make_session("Not found", status_code=404))
        with pytest.raises(FetchError) as exc:
            client.fetch(dt.date(2025, 7, 26))
        assert exc.value.status_code == 404

    def test_transport_error(self, make_session):
        session = make_session()
        session.get.side_effect = requests.ConnectionError("boom")
        with pytest.raises(FetchError, match="could not reach"):
            FeedClient(session).fetch(dt.date(2025, 7, 26))

    def test_missing_parentheses(self, make_session):
        client = FeedClient(make_session("<html>maintenance</html>"))
        with pytest.raises(ParseError):
            client.fetch(dt.date(2025, 7, 26))

    def test_shape_mismatch_is_parse_error(self, make_session, sample_payload, to_jsonp):
        del sample_payload["Mass_Ps"]
        client = FeedClient(make_session(to_jsonp(sample_payload)))
        with pytest.raises(ParseError):
            client.fetch(dt.date(2025, 7, 26))
