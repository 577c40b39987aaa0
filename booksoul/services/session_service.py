"""
Survey session service.

Persists one session per successful pipeline run (survey answers, final
recommendations, reader ratings) in the Supabase `survey_sessions` table.

Storage rules:
- No Supabase client (not configured) → in-memory map for everything.
- bookInspiration sessions and `mem_`-prefixed ids always live in memory.
- Any Supabase failure degrades to the in-memory map with the same
  contract, so callers never see a storage error.

Ratings are ternary: 0 = not for me, 1 = okay, 2 = perfect match.
"""

import logging
import random
import string
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, cast

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from booksoul.schemas.recommendations import FinalRecommendation
from booksoul.schemas.sessions import VALID_RATINGS, SurveySession
from booksoul.schemas.survey import SurveyInput

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "survey_sessions"
IN_MEMORY_PREFIX = "mem_"
APP_USER_AGENT = "BookSoul-Web-App"
APP_VERSION = "1.0.0"
RECENT_SESSIONS_LIMIT = 10

STORE_ERRORS = (APIError, httpx.HTTPError)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _in_memory_id() -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{IN_MEMORY_PREFIX}{int(time.time() * 1000)}_{suffix}"


def validate_rating(rating: Any) -> int:
    """Return the rating if it is 0, 1 or 2; raise ValueError otherwise."""
    if isinstance(rating, bool) or rating not in VALID_RATINGS:
        raise ValueError(f"Rating must be one of {VALID_RATINGS}, got {rating!r}")
    return int(rating)


def calculate_analytics(sessions: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate session counts by mode and the rating distribution."""
    rows = list(sessions)
    sessions_by_mode: Dict[str, int] = {}
    distribution = {str(r): 0 for r in VALID_RATINGS}
    sessions_with_ratings = 0
    total_ratings = 0
    rating_sum = 0

    for row in rows:
        mode = row.get("survey_mode") or "unknown"
        sessions_by_mode[mode] = sessions_by_mode.get(mode, 0) + 1

        ratings = [r for r in (row.get("user_ratings") or {}).values() if r in VALID_RATINGS]
        if ratings:
            sessions_with_ratings += 1
        for rating in ratings:
            distribution[str(rating)] += 1
            total_ratings += 1
            rating_sum += rating

    recent = sorted(rows, key=lambda row: row.get("created_at") or "", reverse=True)[:RECENT_SESSIONS_LIMIT]

    return {
        "total_sessions": len(rows),
        "sessions_by_mode": sessions_by_mode,
        "ratings_distribution": distribution,
        "average_rating": round(rating_sum / total_ratings, 4) if total_ratings else 0.0,
        "sessions_with_ratings": sessions_with_ratings,
        "recent_sessions": [
            {
                "id": row.get("id"),
                "survey_mode": row.get("survey_mode"),
                "created_at": row.get("created_at"),
                "user_ratings": row.get("user_ratings") or {},
            }
            for row in recent
        ],
    }


def calculate_book_ratings(sessions: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Per-book rating list, count and average over rated recommendations."""
    book_ratings: Dict[str, Dict[str, Any]] = {}

    for row in sessions:
        ratings = row.get("user_ratings") or {}
        for book in row.get("recommendations") or []:
            book_id = book.get("id")
            if book_id not in ratings:
                continue
            entry = book_ratings.setdefault(book_id, {
                "title": book.get("title"),
                "author": book.get("author"),
                "ratings": [],
                "average_rating": 0.0,
                "total_ratings": 0,
            })
            entry["ratings"].append(ratings[book_id])
            entry["total_ratings"] += 1

    for entry in book_ratings.values():
        entry["average_rating"] = round(sum(entry["ratings"]) / len(entry["ratings"]), 4)

    return book_ratings


class SessionStore:
    """
    Session persistence with transparent in-memory fallback.

    Args:
        supabase_client: Service-role Supabase client, or None to keep every
            session in memory
    """

    def __init__(self, supabase_client: Optional[Client] = None):
        self.supabase = supabase_client
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        if supabase_client is None:
            logger.warning("Supabase not configured - using in-memory session storage")

    @property
    def uses_in_memory_storage(self) -> bool:
        return self.supabase is None

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def _create_in_memory(
        self,
        survey_data: Dict[str, Any],
        recommendations: List[Dict[str, Any]],
        user_email: Optional[str],
    ) -> SurveySession:
        now = _now()
        session = {
            "id": _in_memory_id(),
            "survey_mode": survey_data["survey_mode"],
            "survey_data": survey_data,
            "recommendations": recommendations,
            "user_ratings": {},
            "user_email": user_email,
            "created_at": now,
            "updated_at": now,
            "session_metadata": {
                "created_at": now,
                "user_agent": APP_USER_AGENT,
                "version": APP_VERSION,
                "storage": "in-memory",
            },
        }
        with self._lock:
            self._sessions[session["id"]] = session
        logger.info(f"In-memory session created: {session['id']}")
        return SurveySession.model_validate(session)

    async def create_session(
        self,
        survey: SurveyInput,
        recommendations: List[FinalRecommendation],
        user_email: Optional[str] = None,
    ) -> SurveySession:
        """
        Persist a new session for a finished pipeline run.

        Never raises on storage failure; falls back to memory instead.
        """
        survey_data = survey.model_dump(mode="json", exclude={"user_email"})
        recs = [rec.model_dump(mode="json") for rec in recommendations]

        if survey.survey_mode == "bookInspiration":
            logger.info("bookInspiration mode - using in-memory session storage")
            return self._create_in_memory(survey_data, recs, user_email)

        if self.supabase is None:
            return self._create_in_memory(survey_data, recs, user_email)

        now = _now()
        session_data = {
            "survey_mode": survey.survey_mode,
            "survey_data": survey_data,
            "recommendations": recs,
            "user_ratings": {},
            "user_email": user_email,
            "session_metadata": {
                "created_at": now,
                "user_agent": APP_USER_AGENT,
                "version": APP_VERSION,
            },
        }

        try:
            result = self.supabase.table(SESSIONS_TABLE).insert(session_data).execute()
        except STORE_ERRORS as e:
            logger.error(f"Failed to create survey session in Supabase: {e}")
            logger.warning("Falling back to in-memory session storage")
            return self._create_in_memory(survey_data, recs, user_email)

        if not result.data:
            logger.warning("Supabase insert returned no row, falling back to in-memory storage")
            return self._create_in_memory(survey_data, recs, user_email)

        row = cast(Dict[str, Any], result.data[0])
        row.setdefault("created_at", now)
        row.setdefault("updated_at", row["created_at"])
        logger.info(f"Survey session created: {row['id']}")
        return SurveySession.model_validate(row)

    # -------------------------------------------------------------------------
    # Ratings
    # -------------------------------------------------------------------------

    def _rate_in_memory(self, session_id: str, book_id: str, rating: int) -> bool:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                logger.warning(f"In-memory session not found: {session_id}")
                return False
            session["user_ratings"][book_id] = rating
            session["updated_at"] = _now()
        logger.info(f"In-memory rating updated: {session_id} → {book_id} = {rating}")
        return True

    async def submit_rating(self, session_id: str, book_id: str, rating: int) -> bool:
        """
        Record a rating for one book of a session.

        Returns:
            True if recorded, False if the session does not exist

        Raises:
            ValueError: rating is not 0, 1 or 2
        """
        rating = validate_rating(rating)

        client = self.supabase
        if client is None or session_id.startswith(IN_MEMORY_PREFIX):
            return self._rate_in_memory(session_id, book_id, rating)

        try:
            result = (
                client.table(SESSIONS_TABLE)
                .select("user_ratings")
                .eq("id", session_id)
                .execute()
            )
            if not result.data:
                logger.warning(f"Session not found in Supabase: {session_id}, checking in-memory")
                return self._rate_in_memory(session_id, book_id, rating)

            row = cast(Dict[str, Any], result.data[0])
            updated_ratings = {**(row.get("user_ratings") or {}), book_id: rating}

            (
                client.table(SESSIONS_TABLE)
                .update({"user_ratings": updated_ratings, "updated_at": _now()})
                .eq("id", session_id)
                .execute()
            )
        except STORE_ERRORS as e:
            logger.error(f"Failed to submit rating to Supabase: {e}")
            logger.warning("Falling back to in-memory session storage")
            return self._rate_in_memory(session_id, book_id, rating)

        logger.info(f"Rating updated: {session_id} → {book_id} = {rating}")
        return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _get_in_memory(self, session_id: str) -> Optional[SurveySession]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            return SurveySession.model_validate(session)

    async def get_session(self, session_id: str) -> Optional[SurveySession]:
        """Return the session, or None if no store knows the id."""
        client = self.supabase
        if client is None or session_id.startswith(IN_MEMORY_PREFIX):
            return self._get_in_memory(session_id)

        try:
            result = (
                client.table(SESSIONS_TABLE)
                .select("*")
                .eq("id", session_id)
                .execute()
            )
        except STORE_ERRORS as e:
            logger.error(f"Failed to fetch session from Supabase: {e}")
            return self._get_in_memory(session_id)

        if not result.data:
            return self._get_in_memory(session_id)

        row = cast(Dict[str, Any], result.data[0])
        row.setdefault("updated_at", row.get("created_at") or _now())
        return SurveySession.model_validate(row)

    def _memory_rows(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(session) for session in self._sessions.values()]

    def _stored_rows(self, columns: str) -> List[Dict[str, Any]]:
        """Supabase rows plus in-memory sessions; memory only on failure."""
        rows = self._memory_rows()
        if self.supabase is None:
            return rows
        try:
            result = self.supabase.table(SESSIONS_TABLE).select(columns).execute()
        except STORE_ERRORS as e:
            logger.error(f"Failed to fetch sessions from Supabase: {e}")
            return rows
        return cast(List[Dict[str, Any]], result.data or []) + rows

    async def get_analytics(self) -> Dict[str, Any]:
        """Session counts by mode, rating distribution and recent sessions."""
        return calculate_analytics(self._stored_rows("id, survey_mode, created_at, user_ratings"))

    async def get_ratings_by_book(self) -> Dict[str, Dict[str, Any]]:
        """Ratings grouped by book id."""
        return calculate_book_ratings(self._stored_rows("recommendations, user_ratings"))
