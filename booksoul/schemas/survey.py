"""
Pydantic schemas for the reader survey.

SurveyInput is the immutable record every pipeline stage reads. It is built
once from the request body; sanitisation (trimming, length limits, empty item
removal) and the mode-specific required-field rules live here so that no
agent has to re-check raw input.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SurveyMode = Literal["quick", "deep", "cinema", "bookInspiration"]

MAX_SHORT_TEXT = 500
MAX_FREE_TEXT = 1000
MAX_LIST_ITEMS = 10
MAX_LIST_ITEM_LENGTH = 200


def _clean_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    cleaned = [
        item.strip()[:MAX_LIST_ITEM_LENGTH]
        for item in value
        if isinstance(item, str) and item.strip()
    ]
    return cleaned[:MAX_LIST_ITEMS]


class FavoriteBook(BaseModel):
    """A book the reader loved, with the reason it mattered (bookInspiration mode)."""
    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1, max_length=MAX_LIST_ITEM_LENGTH)
    reason: str = Field(default="", max_length=MAX_FREE_TEXT)

    @field_validator("title", mode="before")
    @classmethod
    def _clean_title(cls, value: Any) -> Any:
        return value.strip()[:MAX_LIST_ITEM_LENGTH] if isinstance(value, str) else value

    @field_validator("reason", mode="before")
    @classmethod
    def _clean_reason(cls, value: Any) -> Any:
        return value.strip()[:MAX_FREE_TEXT] if isinstance(value, str) else value


class SurveyInput(BaseModel):
    """
    Reader preferences submitted through the survey.

    Field usage per mode:
    - quick: favorite_genres, current_mood, reading_goal (+ optional action_pace, triggers)
    - deep: quick fields + stress_level and the optional deep extras
    - cinema: favorite_films (>= 2) + film_connection
    - bookInspiration: favorite_books (title + reason pairs)
    """
    model_config = ConfigDict(frozen=True)

    survey_mode: SurveyMode = Field(
        ...,
        description="Which survey the reader filled in",
        examples=["quick", "deep", "cinema", "bookInspiration"],
    )

    favorite_genres: List[str] = Field(default_factory=list, examples=[["fiction", "mystery"]])
    current_mood: Optional[str] = Field(None, examples=["curious"])
    reading_goal: Optional[str] = Field(None, examples=["entertain"])
    action_pace: Optional[str] = Field(None, examples=["moderate"])
    triggers: List[str] = Field(
        default_factory=list,
        description="Content the reader wants to avoid (violence, death, ...)",
        examples=[["violence"]],
    )

    # Cinema mode
    favorite_films: List[str] = Field(default_factory=list, examples=[["Inception", "Arrival"]])
    film_connection: Optional[str] = Field(None, examples=["mind-bending plots"])

    # bookInspiration mode
    favorite_books: List[FavoriteBook] = Field(default_factory=list)
    favorite_authors: Optional[str] = None

    # Deep mode extras
    stress_level: Optional[str] = None
    complexity_tolerance: Optional[str] = Field(
        None,
        description="low / medium / high / academic",
    )
    book_length: Optional[str] = Field(None, description="short / medium / long / any")
    reading_frequency: Optional[str] = None
    want_to_learn: List[str] = Field(default_factory=list)
    motivation_needed: Optional[str] = None

    # Technical data
    data_consent: bool = False
    user_email: Optional[str] = Field(None, max_length=320)

    @field_validator(
        "current_mood", "reading_goal", "action_pace", "stress_level",
        "complexity_tolerance", "book_length", "reading_frequency",
        "motivation_needed", "user_email",
        mode="before",
    )
    @classmethod
    def _clean_short_text(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        value = value.strip()[:MAX_SHORT_TEXT]
        return value or None

    @field_validator("film_connection", "favorite_authors", mode="before")
    @classmethod
    def _clean_free_text(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        value = value.strip()[:MAX_FREE_TEXT]
        return value or None

    @field_validator("favorite_genres", "triggers", "favorite_films", "want_to_learn", mode="before")
    @classmethod
    def _clean_lists(cls, value: Any) -> List[str]:
        return _clean_list(value)

    @field_validator("favorite_books", mode="before")
    @classmethod
    def _clean_favorite_books(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        kept = []
        for item in value:
            if isinstance(item, dict) and isinstance(item.get("title"), str) and item["title"].strip():
                kept.append(item)
            elif isinstance(item, FavoriteBook):
                kept.append(item)
        return kept[:MAX_LIST_ITEMS]

    @model_validator(mode="after")
    def _check_mode_requirements(self) -> "SurveyInput":
        mode = self.survey_mode
        if mode == "cinema":
            if len(self.favorite_films) < 2:
                raise ValueError("Cinema mode requires at least 2 favorite films")
        elif mode in ("quick", "deep"):
            required = ["favorite_genres", "current_mood", "reading_goal"]
            if mode == "deep":
                required.append("stress_level")
            for field in required:
                if not getattr(self, field):
                    raise ValueError(f"{mode.capitalize()} mode requires {field}")
        elif mode == "bookInspiration":
            if not self.favorite_books:
                raise ValueError("bookInspiration mode requires at least 1 favorite book")
        return self
