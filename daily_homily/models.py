from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Reading:
    """One reading as the provider sends it: citation + HTML-ish body."""
    source: str
    text: str


@dataclass(frozen=True)
class FeedRecord:
    day: str
    first_reading: Reading
    psalm: Reading
    gospel: Reading
    second_reading: Optional[Reading] = None
    gospel_acclamation: Optional[Reading] = None
    date_label: str = ""
    copyright: str = ""


@dataclass(frozen=True)
class SanitizedReadings:
    first_reading: str
    psalm: str
    gospel: str
    second_reading: Optional[str] = None


@dataclass(frozen=True)
class SanitizedInput:
    feast_day: str
    readings: SanitizedReadings
    first_reading_ref: str
    psalm_ref: str
    gospel_ref: str
    second_reading_ref: Optional[str] = None
    copyright: str = ""


@dataclass(frozen=True)
class Saint:
    name: str
    biography: str


@dataclass(frozen=True)
class GeneratedContent:
    feast: str
    saint_of_the_day: Saint
    first_reading_text: str
    responsorial_psalm_text: str
    gospel_text: str
    homily: str
    second_reading_text: Optional[str] = None
    # names of JSON fields filled from defaults instead of the model
    defaulted: Tuple[str, ...] = field(default=(), compare=False)


@dataclass(frozen=True)
class Passage:
    reference: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"reference": self.reference, "text": self.text}


@dataclass(frozen=True)
class OutputRecord:
    """What the presentation layer renders. References are feed citations, never translated."""
    date: str
    language: str
    feast: str
    saint_of_the_day: Saint
    first_reading: Passage
    responsorial_psalm: Passage
    gospel: Passage
    homily: str
    second_reading: Optional[Passage] = None
    copyright: str = ""

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "date": self.date,
            "language": self.language,
            "feast": self.feast,
            "saintOfTheDay": {
                "name": self.saint_of_the_day.name,
                "biography": self.saint_of_the_day.biography,
            },
            "firstReading": self.first_reading.to_dict(),
            "responsorialPsalm": self.responsorial_psalm.to_dict(),
            "gospel": self.gospel.to_dict(),
            "homily": self.homily,
            "copyright": self.copyright,
        }
        if self.second_reading is not None:
            out["secondReading"] = self.second_reading.to_dict()
        return out
