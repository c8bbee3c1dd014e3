"""Forecast storage used by the forecast lookup pipeline."""

import logging
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class RepositoryUnavailableError(Exception):
    """Backing store could not be reached."""


@dataclass(frozen=True)
class ForecastRecord:
    city: str
    day: date
    temperature_c: float
    summary: str

    @property
    def temperature_f(self) -> float:
        return round(32 + self.temperature_c * 9 / 5, 1)


class ForecastRepository(Protocol):
    def get_forecasts(self, city: str, days: int) -> List[ForecastRecord]:
        ...


def _normalize_city(city: str) -> str:
    return city.strip().lower()


class InMemoryForecastRepository:
    """Dictionary-backed repository; one instance is created per request scope."""

    def __init__(self, records: Optional[Iterable[ForecastRecord]] = None):
        self._records: Dict[str, List[ForecastRecord]] = {}
        self._lock = threading.Lock()
        self.closed = False
        for record in records or []:
            self.add(record)

    def add(self, record: ForecastRecord) -> None:
        with self._lock:
            bucket = self._records.setdefault(_normalize_city(record.city), [])
            bucket.append(record)
            bucket.sort(key=lambda r: r.day)

    def get_forecasts(self, city: str, days: int) -> List[ForecastRecord]:
        with self._lock:
            records = list(self._records.get(_normalize_city(city), []))
        logger.debug(f"Loaded {len(records)} forecast records for {city}")
        return records[:days]

    def close(self) -> None:
        self.closed = True


SAMPLE_SUMMARIES = ["Freezing", "Chilly", "Mild", "Warm", "Hot", "Scorching"]

# (city, starting temperature in C)
SAMPLE_CITIES = [
    ("Brisbane", 24.0),
    ("Melbourne", 14.5),
    ("Wellington", 11.0),
]


def sample_records(start: Optional[date] = None, days: int = 7) -> List[ForecastRecord]:
    """Deterministic sample data for local runs and tests."""
    start = start or date.today()
    records = []
    for city, base in SAMPLE_CITIES:
        for offset in range(days):
            temperature = base + (offset % 3) - 1
            summary = SAMPLE_SUMMARIES[min(len(SAMPLE_SUMMARIES) - 1, max(0, int(temperature // 7)))]
            records.append(ForecastRecord(city, start + timedelta(days=offset), temperature, summary))
    return records
