"""Exceptions raised by the daily reading pipeline."""

from __future__ import annotations
from typing import Optional


class DailyReadingError(Exception):
    """Base class for every pipeline failure."""


class FetchError(DailyReadingError):
    """The feed provider could not be reached or answered with a non-200 status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(DailyReadingError):
    """A feed envelope or a model response did not have the expected shape."""


class GenerationError(DailyReadingError):
    """Every generation attempt failed, or the generator is misconfigured."""
