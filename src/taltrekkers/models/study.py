"""Study material and quiz models produced by the generation service."""

from enum import StrEnum

from pydantic import BaseModel, Field

from taltrekkers.models.profile import CamelModel


class QuestionType(StrEnum):
    MULTIPLE_CHOICE = "MC"
    WRITING = "WRITE"


class FrayerExample(CamelModel):
    sentence: str
    used_word: str  # exact inflected form as it appears in the sentence


class FrayerModel(CamelModel):
    """Four-quadrant study card for a single word."""

    definition: str
    examples: list[FrayerExample] = Field(default_factory=list)
    synonyms: list[str] = Field(default_factory=list)
    antonyms: list[str] = Field(default_factory=list)
    topic: str | None = None

    @property
    def has_valid_examples(self) -> bool:
        return bool(self.examples) and all(
            ex.sentence.strip() and ex.used_word.strip() for ex in self.examples
        )


class QuizQuestion(CamelModel):
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    question: str
    options: list[str] = Field(default_factory=list)
    correct_index: int = -1
    word: str


class QuizQuestionSet(BaseModel):
    """Wrapper object; JSON mode requires an object at the top level."""

    questions: list[QuizQuestion]


class KeyTerms(BaseModel):
    terms: list[str] = Field(default_factory=list)


class StoryData(BaseModel):
    title: str
    story: str


class FeedbackSection(BaseModel):
    title: str
    content: str
