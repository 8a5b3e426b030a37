from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from jsonschema import Draft202012Validator

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"

FEED_SCHEMA = "universalis.schema.json"
OUTPUT_SCHEMA = "daily_reading.schema.json"


@lru_cache(maxsize=None)
def validator_for(name: str) -> Draft202012Validator:
    schema = json.loads((SCHEMA_DIR / name).read_text(encoding="utf-8"))
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def schema_errors(name: str, data: Any) -> List[str]:
    """Every violation as 'path: message', sorted by path; [] when valid."""
    out: List[str] = []
    errs = sorted(validator_for(name).iter_errors(data), key=lambda e: list(map(str, e.path)))
    for err in errs:
        loc = "/".join(map(str, err.path)) or "(root)"
        out.append(f"{loc}: {err.message}")
    return out


def validate_output(data: Any) -> List[str]:
    return schema_errors(OUTPUT_SCHEMA, data)
