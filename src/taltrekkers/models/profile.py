"""User profile and session record models.

Field names serialize as camelCase so the persisted JSON blob and the HTTP payloads
keep the shape the browser client already reads.
"""

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_AVATAR_ID = "default"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudyMode(StrEnum):
    """Presentation used during the study phase."""

    FRAYER = "frayer"
    FLASHCARDS = "flashcards"


AiTier = Literal["fast", "balanced", "quality"]


class PracticeSettings(CamelModel):
    """Configuration snapshot for one practice session."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    show_synonyms_antonyms: bool = True
    context: str | None = None
    difficulty: str | None = None
    words_per_session: int = 20
    ai_model: AiTier | None = None
    native_language: str | None = None

    # Subject-specific selection
    finaliteit: str | None = None
    jaargang: str | None = None
    richting: str | None = None
    course_id: str | None = None
    custom_file_name: str | None = None


class QuizResult(CamelModel):
    word: str
    correct: bool


class ItemTiming(CamelModel):
    word: str
    seconds: float


class SessionTimingData(CamelModel):
    study_phase_seconds: float = 0.0
    quiz_phase_seconds: float = 0.0
    study_items: list[ItemTiming] = Field(default_factory=list)
    quiz_items: list[ItemTiming] = Field(default_factory=list)

    @property
    def total_seconds(self) -> float:
        return self.study_phase_seconds + self.quiz_phase_seconds


class SessionRecord(CamelModel):
    """A completed session. Never mutated after creation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    date: datetime
    words: list[str]
    score: int
    quiz_results: list[QuizResult] = Field(default_factory=list)
    settings: PracticeSettings
    study_mode: StudyMode | None = None
    timing_data: SessionTimingData | None = None


class WordMasteryInfo(CamelModel):
    definition: str
    correct: int = 0
    incorrect: int = 0


class WordListProgress(CamelModel):
    """Which words of one list (file or context) have been practiced."""

    list_id: str
    all_words: list[str] = Field(default_factory=list)
    practiced_words: list[str] = Field(default_factory=list)
    last_practiced: datetime | None = None


class UserProfile(CamelModel):
    mastered_words: int = 0
    total_score: int = 0
    session_history: list[SessionRecord] = Field(default_factory=list)
    learned_words: dict[str, WordMasteryInfo] = Field(default_factory=dict)
    streak: int = 0
    last_practice_date: datetime | None = None
    points: int = 0
    avatar_id: str = DEFAULT_AVATAR_ID
    word_list_progress: dict[str, WordListProgress] = Field(default_factory=dict)
    achievements_unlocked: list[str] = Field(default_factory=list)


AllUsersData = dict[str, UserProfile]


class Avatar(BaseModel):
    id: str
    emoji: str
    name: str
    cost: int = 0

    def is_unlocked(self, points: int) -> bool:
        """Avatars unlock on reaching the cost; points are never spent."""
        return points >= self.cost


class Course(CamelModel):
    """One selectable course in a curriculum track."""

    id: str
    name: str
    finaliteit: str
    jaargang: str
    group: str | None = None
    url: str | None = None

    def apply_to(self, settings: PracticeSettings) -> PracticeSettings:
        """Settings for practising this course; its name doubles as the context."""
        return settings.model_copy(update={
            "finaliteit": self.finaliteit,
            "jaargang": self.jaargang,
            "richting": self.name,
            "course_id": self.id,
            "context": self.name,
        })


def normalize_user_name(name: str) -> str:
    return name.strip().lower()
