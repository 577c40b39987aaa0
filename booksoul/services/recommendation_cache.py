"""
Process-wide cache of final recommendations.

Bounded insertion-ordered map: once the size exceeds max_size the oldest
insertion is evicted. Entries optionally expire after ttl_seconds (the
"optimized" pipeline uses 30 minutes, the standard one never expires).

Requests are served from a thread pool as well as the event loop, so every
access goes through a lock.
"""

import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from booksoul.schemas.survey import SurveyInput
from booksoul.utils.locale import detect_language

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _normalized_list(values: List[str]) -> List[str]:
    return sorted(value.strip().lower() for value in values)


def _normalized_text(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value else None


def build_cache_key(survey: SurveyInput) -> str:
    """
    Normalized, sorted JSON of the survey fields that drive the pipeline.

    Favorite books, complexity tolerance and book length are part of the key
    because they change Curator and Filter output.
    The detected language is keyed as well: favorite-book reasons and
    authors choose it but are not keyed themselves.
    """
    key_data = {
        "mode": survey.survey_mode,
        "genres": _normalized_list(survey.favorite_genres),
        "mood": _normalized_text(survey.current_mood),
        "goal": _normalized_text(survey.reading_goal),
        "films": _normalized_list(survey.favorite_films),
        "triggers": _normalized_list(survey.triggers),
        "filmConnection": _normalized_text(survey.film_connection),
        "books": _normalized_list([book.title for book in survey.favorite_books]),
        "complexity": _normalized_text(survey.complexity_tolerance),
        "length": _normalized_text(survey.book_length),
        "language": detect_language(survey),
    }
    return json.dumps(key_data, sort_keys=True, ensure_ascii=False)


class RecommendationCache(Generic[T]):
    """Thread-safe bounded cache with optional TTL."""

    def __init__(self, max_size: int = 1000, ttl_seconds: Optional[float] = None):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._entries: "OrderedDict[str, Tuple[float, T]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _is_expired(self, stored_at: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return time.monotonic() - stored_at >= self.ttl_seconds

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            stored_at, value = entry
            if self._is_expired(stored_at):
                del self._entries[key]
                self.misses += 1
                return None

            self.hits += 1
            return value

    def set(self, key: str, value: T) -> None:
        with self._lock:
            # Re-inserting moves the key to the end (newest)
            self._entries.pop(key, None)
            self._entries[key] = (time.monotonic(), value)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Cache full, evicted oldest entry ({len(evicted)} char key)")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": round(self.hits / lookups, 4) if lookups else 0.0,
            }
