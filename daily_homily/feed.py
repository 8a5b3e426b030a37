"""
Universalis Mass readings feed.

The provider serves one JSONP file per day:

  https://universalis.com/United.States/20250726/jsonpmass.js?callback=universalisCallback

  universalisCallback({"date": "...", "day": "...", "Mass_R1": {"source": ..., "text": ...}, ...});

We unwrap the callback, check the payload against schemas/universalis.schema.json
and hand back a FeedRecord. Nothing is cached; every call hits the network.
"""

from __future__ import annotations
import datetime as dt
import json
import logging
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import FetchError, ParseError
from .models import FeedRecord, Reading
from .schema import FEED_SCHEMA, schema_errors

logger = logging.getLogger(__name__)

CALLBACK = "universalisCallback"

HEADERS = {
    "User-Agent": ("Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
                   "(KHTML, like Gecko) Chrome/124 Safari/537.36"),
    "Accept": "application/javascript,application/json;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}


def make_session() -> requests.Session:
    """Session that retries connection hiccups and 5xx on GET, but reports the final status."""
    retry = Retry(total=3, backoff_factor=0.5,
                  status_forcelist=(500, 502, 503, 504),
                  allowed_methods=("GET",), raise_on_status=False)
    session = requests.Session()
    session.mount("https://", HTTPAdapter(max_retries=retry))
    session.mount("http://", HTTPAdapter(max_retries=retry))
    session.headers.update(HEADERS)
    return session


def feed_date(d: dt.date) -> str:
    return f"{d.year:04d}{d.month:02d}{d.day:02d}"


def feed_url(d: dt.date, region: str = "United.States", base_url: str = "https://universalis.com") -> str:
    return f"{base_url.rstrip('/')}/{region}/{feed_date(d)}/jsonpmass.js?callback={CALLBACK}"


def unwrap_jsonp(body: str) -> Dict[str, Any]:
    """
    'cb({...});' -> {...}

    Takes everything between the first '(' and the last ')'. A body without
    that pair is rejected outright; no attempt is made to guess.
    """
    body = body or ""
    start = body.find("(")
    end = body.rfind(")")
    if start == -1 or end == -1 or end < start:
        raise ParseError("feed response is not a callback-wrapped payload")
    inner = body[start + 1:end].strip()
    if not inner:
        raise ParseError("feed response has an empty callback payload")
    try:
        data = json.loads(inner)
    except json.JSONDecodeError as e:
        raise ParseError(f"feed payload is not valid JSON at line {e.lineno} col {e.colno}: {e.msg}") from e
    if not isinstance(data, dict):
        raise ParseError(f"feed payload must be an object, got {type(data).__name__}")
    return data


def _reading(obj: Optional[Dict[str, Any]]) -> Optional[Reading]:
    if not isinstance(obj, dict):
        return None
    return Reading(source=obj["source"], text=obj["text"])


def parse_feed(data: Dict[str, Any]) -> FeedRecord:
    errs = schema_errors(FEED_SCHEMA, data)
    if errs:
        raise ParseError("feed payload does not match schema: " + "; ".join(errs))

    copyright_ = data.get("copyright") or {}
    return FeedRecord(
        day=data["day"],
        first_reading=_reading(data["Mass_R1"]),
        psalm=_reading(data["Mass_Ps"]),
        gospel=_reading(data["Mass_G"]),
        second_reading=_reading(data.get("Mass_R2")),
        gospel_acclamation=_reading(data.get("Mass_GA")),
        date_label=data.get("date", ""),
        copyright=copyright_.get("text", ""),
    )


class FeedClient:
    def __init__(self, session: Optional[requests.Session] = None, *,
                 region: str = "United.States",
                 base_url: str = "https://universalis.com",
                 timeout: float = 25.0,
                 tz: str = "America/New_York"):
        self.session = session or make_session()
        self.region = region
        self.base_url = base_url
        self.timeout = timeout
        self.tz = ZoneInfo(tz)

    def today(self) -> dt.date:
        return dt.datetime.now(self.tz).date()

    def fetch_today(self) -> FeedRecord:
        return self.fetch(self.today())

    def fetch(self, d: dt.date) -> FeedRecord:
        url = feed_url(d, self.region, self.base_url)
        logger.info("GET %s", url)
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"could not reach feed provider: {e}") from e

        if r.status_code != 200:
            raise FetchError(f"feed provider returned HTTP {r.status_code} for {feed_date(d)}",
                             status_code=r.status_code)

        record = parse_feed(unwrap_jsonp(r.text))
        logger.info("feed %s: %s | R1=%s | Ps=%s | G=%s", feed_date(d), record.day,
                    record.first_reading.source, record.psalm.source, record.gospel.source)
        return record
