"""Shared test fixtures for the daily homily tests."""

import json
from unittest.mock import MagicMock

import pytest

from daily_homily.generate import TransportError


SAMPLE_PAYLOAD = {
    "date": "Saturday 26 July 2025",
    "day": "Saints Joachim and Anne, Parents of the Blessed Virgin Mary&#160;- Memorial",
    "Mass_R1": {
        "source": "Exodus 24:3&#x2010;8",
        "text": "<div>Moses went and told the people all the commands of the Lord.</div>"
                "<div>All the people answered with one voice,&#160;“We will do everything.”</div>",
    },
    "Mass_Ps": {
        "source": "Psalm 49(50):1&#x2010;2,5&#x2010;6,14&#x2010;15",
        "text": "<div class=\"v\">The God of gods, the Lord,</div><div class=\"v\">has spoken.</div>",
    },
    "Mass_GA": {
        "source": "James 1:21",
        "text": "<div>Alleluia, alleluia!</div>",
    },
    "Mass_G": {
        "source": "<i>Matthew</i> 13:24&#x2010;30",
        "text": "<div>Jesus put another parable before the crowds.</div><p></p><div>Let them both grow till the harvest.</div>",
    },
    "copyright": {"text": "Readings &#169; Universalis Publishing"},
}


def jsonp(payload, callback="universalisCallback"):
    return f"{callback}({json.dumps(payload)});"


GENERATED = {
    "feast": "Santos Joaquín y Ana",
    "saintOfTheDay": {
        "name": "Santos Joaquín y Ana",
        "biography": "Padres de la Virgen María, venerados desde antiguo.",
    },
    "firstReadingText": "Moisés fue y comunicó al pueblo todas las palabras del Señor.",
    "responsorialPsalmText": "El Dios de los dioses, el Señor,\nha hablado.",
    "gospelText": "Jesús propuso otra parábola a la gente.",
    "homily": "La liturgia de hoy nos sitúa ante el misterio de la alianza.",
}


class FakeTransport:
    """Replays a script of results (str) or failures (exceptions); records the keys used."""

    def __init__(self, script=None, by_key=None):
        self.script = list(script or [])
        self.by_key = by_key or {}
        self.keys = []
        self.prompts = []

    def complete(self, prompt, api_key):
        self.keys.append(api_key)
        self.prompts.append(prompt)
        if api_key in self.by_key:
            outcome = self.by_key[api_key]
        else:
            outcome = self.script.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def sample_payload():
    """A complete weekday payload, deep-copied per test."""
    return json.loads(json.dumps(SAMPLE_PAYLOAD))


@pytest.fixture
def sample_jsonp(sample_payload):
    return jsonp(sample_payload)


@pytest.fixture
def generated_json():
    return json.dumps(GENERATED, ensure_ascii=False)


@pytest.fixture
def rate_limited():
    return TransportError("Gemini API error: Too Many Requests (Status: 429)", status_code=429)


@pytest.fixture
def make_session():
    """Factory for a mock requests.Session whose get() returns the given body and status."""
    def _make(text="", status_code=200):
        session = MagicMock()
        response = MagicMock()
        response.status_code = status_code
        response.text = text
        session.get.return_value = response
        return session
    return _make


@pytest.fixture
def no_sleep():
    """Sleep stand-in that records requested delays."""
    delays = []

    def _sleep(seconds):
        delays.append(seconds)
    _sleep.delays = delays
    return _sleep


@pytest.fixture
def to_jsonp():
    return jsonp


@pytest.fixture
def fake_transport():
    """Factory: fake_transport(script=[...], by_key={...})."""
    return FakeTransport
