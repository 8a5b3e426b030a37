from __future__ import annotations
from typing import List

from .models import SanitizedReadings

STYLE_CARD = """ROLE: Catholic theologian, liturgist, hagiographer and translator.
LANGUAGE: Every text field of your answer MUST be written in {language}. No other language anywhere.

TASKS:
1. Readings: {reading_task}
2. Homily: write an original homily on these readings. Theologically rich, reflective and mystical,
   in a scholarly, academic register. Several paragraphs separated by blank lines.
3. Saint of the day: name the saint (or mystery) honoured today and give a short, inspiring biography.

RULES:
- Biblical citations (like "Matthew 10:1-7") are supplied separately. Do not invent, alter,
  translate or include any citation string in your answer.
- Do not add commentary outside the JSON object.
- Output ONLY one JSON object with exactly these keys:
{keys}
"""

ENGLISH_TASK = ("the target language is English: return the source texts unchanged "
                "but well formatted, with one paragraph per line.")
TRANSLATE_TASK = ("translate the feast name and every reading below into {language} faithfully, "
                  "keeping the paragraph breaks.")


def is_english(language: str) -> bool:
    return (language or "").strip().lower() in ("english", "en", "en-us", "en-gb")


def response_keys(with_second_reading: bool) -> List[str]:
    keys = [
        '  "feast": string (feast or liturgical day name)',
        '  "saintOfTheDay": {"name": string, "biography": string}',
        '  "firstReadingText": string',
        '  "responsorialPsalmText": string',
    ]
    if with_second_reading:
        keys.append('  "secondReadingText": string')
    keys += [
        '  "gospelText": string',
        '  "homily": string',
    ]
    return keys


def build_prompt(language: str, feast_day: str, readings: SanitizedReadings) -> str:
    """Plain templating; same inputs, same prompt."""
    with_second = bool(readings.second_reading)
    task = ENGLISH_TASK if is_english(language) else TRANSLATE_TASK.format(language=language)
    head = STYLE_CARD.format(language=language, reading_task=task,
                             keys="\n".join(response_keys(with_second)))

    blocks = [
        f"FEAST: {feast_day}",
        "",
        "FIRST READING:",
        readings.first_reading,
        "",
        "RESPONSORIAL PSALM:",
        readings.psalm,
    ]
    if with_second:
        blocks += ["", "SECOND READING:", readings.second_reading]
    blocks += ["", "GOSPEL:", readings.gospel]

    return head + "\nENGLISH SOURCE CONTENT:\n" + "\n".join(blocks) + "\n"
