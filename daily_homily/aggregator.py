"""
Feed -> sanitize -> prompt -> generate -> merge.

Citations in the output always come from the feed (cleaned, untranslated);
prose always comes from the model. Any error propagates as-is.
"""

from __future__ import annotations
import datetime as dt
import logging
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from .config import Settings
from .feed import FeedClient
from .generate import GenerativeClient, make_client, placeholder_content
from .models import (
    FeedRecord, GeneratedContent, OutputRecord, Passage, SanitizedInput, SanitizedReadings,
)
from .prompt import build_prompt
from .sanitize import format_paragraphs, strip_html

logger = logging.getLogger(__name__)

MONTHS = ("January", "February", "March", "April", "May", "June", "July",
          "August", "September", "October", "November", "December")


def format_display_date(d: dt.date) -> str:
    """en-US long form, independent of the process locale: 'July 26, 2024'."""
    return f"{MONTHS[d.month - 1]} {d.day}, {d.year}"


def sanitize_feed(record: FeedRecord) -> SanitizedInput:
    second = record.second_reading
    return SanitizedInput(
        feast_day=strip_html(record.day),
        readings=SanitizedReadings(
            first_reading=format_paragraphs(record.first_reading.text),
            psalm=format_paragraphs(record.psalm.text),
            gospel=format_paragraphs(record.gospel.text),
            second_reading=format_paragraphs(second.text) if second else None,
        ),
        first_reading_ref=strip_html(record.first_reading.source),
        psalm_ref=strip_html(record.psalm.source),
        gospel_ref=strip_html(record.gospel.source),
        second_reading_ref=strip_html(second.source) if second else None,
        copyright=strip_html(record.copyright),
    )


def source_fallback(clean: SanitizedInput) -> GeneratedContent:
    """What a field falls back to when the model leaves it out: the English source."""
    base = placeholder_content()
    return GeneratedContent(
        feast=clean.feast_day,
        saint_of_the_day=base.saint_of_the_day,
        first_reading_text=clean.readings.first_reading,
        responsorial_psalm_text=clean.readings.psalm,
        gospel_text=clean.readings.gospel,
        homily=base.homily,
        second_reading_text=clean.readings.second_reading,
    )


class DailyReadingService:
    def __init__(self, feed_client: FeedClient, generator: GenerativeClient, *,
                 tz: str = "America/New_York",
                 clock: Optional[Callable[[], dt.date]] = None):
        self.feed_client = feed_client
        self.generator = generator
        self.tz = ZoneInfo(tz)
        self.clock = clock or (lambda: dt.datetime.now(self.tz).date())

    def get_daily_reading(self, language: str) -> OutputRecord:
        record = self.feed_client.fetch_today()
        clean = sanitize_feed(record)
        prompt = build_prompt(language, clean.feast_day, clean.readings)
        logger.info("generating %s content for %s (%d prompt chars)", language, clean.feast_day, len(prompt))
        content = self.generator.generate(prompt, source_fallback(clean))
        return merge(clean, content, language, format_display_date(self.clock()))


def merge(clean: SanitizedInput, content: GeneratedContent, language: str, display_date: str) -> OutputRecord:
    second = None
    if clean.second_reading_ref is not None:
        second = Passage(clean.second_reading_ref,
                         content.second_reading_text or clean.readings.second_reading or "")
    return OutputRecord(
        date=display_date,
        language=language,
        feast=content.feast,
        saint_of_the_day=content.saint_of_the_day,
        first_reading=Passage(clean.first_reading_ref, content.first_reading_text),
        responsorial_psalm=Passage(clean.psalm_ref, content.responsorial_psalm_text),
        gospel=Passage(clean.gospel_ref, content.gospel_text),
        homily=content.homily,
        second_reading=second,
        copyright=clean.copyright,
    )


def build_service(settings: Settings) -> DailyReadingService:
    feed_client = FeedClient(region=settings.feed_region, base_url=settings.feed_base_url,
                             timeout=settings.feed_timeout, tz=settings.app_tz)
    return DailyReadingService(feed_client, make_client(settings), tz=settings.app_tz)


def get_daily_reading(language: str, settings: Optional[Settings] = None) -> OutputRecord:
    return build_service(settings or Settings.from_env()).get_daily_reading(language)
