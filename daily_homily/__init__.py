"""Daily Mass readings, translated, with a generated homily and saint of the day."""

from .aggregator import DailyReadingService, get_daily_reading
from .errors import DailyReadingError, FetchError, GenerationError, ParseError
from .models import OutputRecord

__all__ = [
    "DailyReadingService",
    "get_daily_reading",
    "OutputRecord",
    "DailyReadingError",
    "FetchError",
    "ParseError",
    "GenerationError",
]
