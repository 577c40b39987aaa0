"""
Recommendation Pipeline Prompt Templates

Contains the system prompts and user prompt builders for the two LLM-backed
pipeline stages:

- Profiler: survey answers → psychological reading profile (JSON object)
- Curator: profile + survey → N book candidates (JSON array)

Prompt Engineering Pattern:
- XML tags for structured content
- System prompt defines role only
- User prompt carries the mode-specific survey context, the output schema
  and an explicit output-language directive

Builders are pure: the same survey always yields the same prompt text.
Missing survey fields render as "Not specified".
"""

from typing import List, Optional

from booksoul.schemas.recommendations import UserProfile
from booksoul.schemas.survey import SurveyInput
from booksoul.utils.locale import DEFAULT_LANGUAGE, t

NOT_SPECIFIED = "Not specified"

# =============================================================================
# SYSTEM PROMPTS
# =============================================================================

PROFILER_SYSTEM_PROMPT = """You are a psychology expert specializing in reading preferences for BookSoul, a personalised book recommendation service.

<role>
You analyse short reader surveys and describe the reader's emotional state, cognitive style and reading motivation so that a book curator can choose books for them.
</role>

<output_format>
Always return a single valid JSON object matching the schema provided in the user prompt.
No markdown code blocks, no explanatory text, only the JSON object.
</output_format>"""


CURATOR_SYSTEM_PROMPT = """You are a literary expert and book curator for BookSoul, a personalised book recommendation service.

<role>
You recommend REAL, EXISTING, widely available books that match a reader's psychological profile and survey answers.
Never invent titles or authors. If you are not sure a book exists, do not recommend it.
</role>

<output_format>
Always return a single valid JSON array matching the schema provided in the user prompt.
No markdown code blocks, no explanatory text, only the JSON array.
</output_format>"""


# =============================================================================
# HELPERS
# =============================================================================

def _value(value: Optional[str]) -> str:
    return value if value else NOT_SPECIFIED


def _joined(values: List[str]) -> str:
    return ", ".join(values) if values else NOT_SPECIFIED


def _language_directive(language: str) -> str:
    return f"Respond in {t(language, 'language_name')}. Every text field in your answer must be written in {t(language, 'language_name')}."


def _favorite_books_section(survey: SurveyInput) -> str:
    if not survey.favorite_books:
        return NOT_SPECIFIED
    lines = []
    for book in survey.favorite_books:
        reason = book.reason or NOT_SPECIFIED
        lines.append(f'  - "{book.title}" (why it mattered: {reason})')
    return "\n".join(lines)


def _survey_section(survey: SurveyInput) -> str:
    """Mode-specific survey context shared by both prompts."""
    mode = survey.survey_mode

    if mode == "cinema":
        return f"""<survey mode="cinema">
Favorite Films/Series: {_joined(survey.favorite_films)}
Film Connection: {_value(survey.film_connection)}
</survey>"""

    if mode == "bookInspiration":
        return f"""<survey mode="bookInspiration">
Favorite Books:
{_favorite_books_section(survey)}
Favorite Authors: {_value(survey.favorite_authors)}
Themes to Avoid: {_joined(survey.triggers)}
</survey>"""

    section = f"""<survey mode="{mode}">
Favorite Genres: {_joined(survey.favorite_genres)}
Current Mood: {_value(survey.current_mood)}
Reading Goal: {_value(survey.reading_goal)}
Action Pace: {_value(survey.action_pace)}
Themes to Avoid: {_joined(survey.triggers)}
Stress Level: {_value(survey.stress_level)}"""

    if mode == "deep":
        section += f"""
Complexity Tolerance: {_value(survey.complexity_tolerance)}
Book Length Preference: {_value(survey.book_length)}
Reading Frequency: {_value(survey.reading_frequency)}
Learning Interest: {_joined(survey.want_to_learn)}
Motivation Needed: {_value(survey.motivation_needed)}"""

    return section + "\n</survey>"


_FOCUS_BY_MODE = {
    "cinema": """Focus on books that:
1. Share narrative DNA with their favorite films
2. Have been adapted to screen or have cinematic qualities
3. Match the emotional tone and pacing of their preferred media
4. Offer similar character development and themes""",
    "bookInspiration": """Focus on books that:
1. Evoke the same feelings the reader described for their favorite books
2. Share themes, atmosphere or writing style with those books
3. Are NOT the favorite books themselves""",
}

_DEFAULT_FOCUS = """Focus on books that:
1. Fit the reader's favorite genres
2. Suit their current mood and reading goal
3. Move at their preferred pace
4. Avoid every theme listed under Themes to Avoid"""


# =============================================================================
# USER PROMPT BUILDERS
# =============================================================================

def build_profile_prompt(survey: SurveyInput, language: str = DEFAULT_LANGUAGE) -> str:
    """
    Build the Profiler's user prompt.

    Args:
        survey: Validated survey answers
        language: Locale tag from detect_language()

    Returns:
        str: Prompt asking for a JSON profile object
    """
    if survey.survey_mode == "cinema":
        analysis_focus = """Analyse their cinematic preferences, focusing on:
1. Narrative preferences (pacing, complexity, themes)
2. Emotional resonance patterns
3. Character development preferences
4. Visual storytelling appreciation
5. Genre crossover potential from screen to page"""
    else:
        analysis_focus = """Create a comprehensive psychological profile including:
1. Emotional state and needs
2. Cognitive preferences
3. Personality indicators
4. Reading psychology patterns
5. Therapeutic reading potential"""

    return f"""Analyse this reader's survey and build their reading profile.

{_survey_section(survey)}

<instructions>
{analysis_focus}
</instructions>

<output_schema>
Return ONLY valid JSON with this exact structure:
{{
  "emotionalState": string,
  "cognitiveStyle": string,
  "personalityTraits": [string, string],
  "readingMotivation": string,
  "therapeuticNeeds": string,
  "preferredNarrativeStyle": string,
  "complexityLevel": "low" | "medium" | "high",
  "emotionalTolerance": "low" | "medium" | "high"
}}

Language: {_language_directive(language)}
</output_schema>"""


def build_curation_prompt(
    profile: UserProfile,
    survey: SurveyInput,
    book_count: int,
    language: str = DEFAULT_LANGUAGE,
) -> str:
    """
    Build the Curator's user prompt.

    Args:
        profile: Profile produced by the Profiler
        survey: Validated survey answers
        book_count: Number of books to request
        language: Locale tag from detect_language()

    Returns:
        str: Prompt asking for a JSON array of book_count books
    """
    traits = ", ".join(profile.personality_traits) or NOT_SPECIFIED
    focus = _FOCUS_BY_MODE.get(survey.survey_mode, _DEFAULT_FOCUS)

    return f"""Recommend books for the reader described below.

<profile>
Emotional State: {profile.emotional_state}
Cognitive Style: {profile.cognitive_style}
Personality Traits: {traits}
Reading Motivation: {profile.reading_motivation}
Preferred Narrative Style: {profile.preferred_narrative_style}
Complexity Level: {profile.complexity_level}
Emotional Tolerance: {profile.emotional_tolerance}
</profile>

{_survey_section(survey)}

<instructions>
{focus}

Recommend exactly {book_count} REAL, EXISTING books. Do not invent books.
</instructions>

<output_schema>
Return ONLY a valid JSON array with exactly this structure. No markdown, no prose.
[
  {{
    "title": string,
    "author": string,
    "genres": [string],
    "description": string,
    "personalizedDescription": string,
    "matchReason": string,
    "emotionalTone": "light" | "medium" | "heavy",
    "complexity": "low" | "medium" | "high",
    "pageCount": number,
    "publicationYear": number,
    "themes": [string],
    "matchScore": number,
    "matchingSteps": [string, string, string],
    "psychologicalMatch": {{
      "moodAlignment": string,
      "cognitiveMatch": string,
      "therapeuticValue": string,
      "personalityFit": string
    }}
  }}
]

Rules:
- emotionalTone must be exactly "light", "medium" or "heavy"
- complexity must be exactly "low", "medium" or "high"
- pageCount must be a number between 150 and 800
- publicationYear must be a 4-digit year between 1950 and the current year
- matchScore must be an integer between 70 and 98
- genres should contain 1-3 genres, themes 2-4 themes
- matchingSteps must contain at least 3 short steps explaining the match

Language: {_language_directive(language)}
</output_schema>"""
