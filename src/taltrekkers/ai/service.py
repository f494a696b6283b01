"""Generation facade: study material, quizzes, stories, evaluations and speech."""

import json

import structlog

from taltrekkers.ai import prompts
from taltrekkers.ai.client import LanguageClient, retry_with_backoff
from taltrekkers.audio.encoder import TTS_SAMPLE_RATE, float32_to_wav, pcm16_to_float32
from taltrekkers.config import Settings
from taltrekkers.errors import GenerationError
from taltrekkers.models.profile import PracticeSettings, SessionRecord
from taltrekkers.models.study import (
    FeedbackSection,
    FrayerModel,
    KeyTerms,
    QuestionType,
    QuizQuestion,
    QuizQuestionSet,
    StoryData,
)

logger = structlog.get_logger()

WRITING_QUESTION_EVERY = 3
DEFAULT_FEEDBACK_TITLE = "Feedback van de AI-leraar"


class GenerationService:
    """All calls to the generative-language backend go through here.

    Args:
        settings: Application settings (model tiers, retry policy, TTS voice).
        client: Language client; built from the API key when omitted.
    """

    def __init__(self, settings: Settings, client: LanguageClient | None = None):
        self.settings = settings
        self.client = client or LanguageClient(api_key=settings.openai_api_key)

    def _model(self, practice: PracticeSettings | None) -> str:
        return self.settings.model_for_tier(practice.ai_model if practice else None)

    async def _retry(self, operation, label: str):
        return await retry_with_backoff(
            operation,
            label=label,
            max_attempts=self.settings.generation_max_attempts,
            base_delay=self.settings.generation_base_delay_seconds,
        )

    async def generate_frayer_model(self, word: str, practice: PracticeSettings) -> FrayerModel:
        prompt = prompts.frayer_prompt(word, practice.context, practice.difficulty)
        model_name = self._model(practice)

        async def attempt() -> FrayerModel:
            model = await self.client.complete_json(prompt, FrayerModel, model=model_name)
            if not model.has_valid_examples:
                raise ValueError(
                    "Het gegenereerde model bevat lege voorbeeldzinnen of missende woordvormen."
                )
            return model

        model = await self._retry(attempt, f"het Frayer model voor '{word}'")
        logger.info("frayer_model_generated", word=word)
        return model

    async def translate_frayer_model(
        self, model: FrayerModel, language: str, practice: PracticeSettings
    ) -> FrayerModel:
        try:
            return await self.client.complete_json(
                prompts.translate_prompt(model, language),
                FrayerModel,
                model=self._model(practice),
                temperature=0.2,
            )
        except Exception as e:
            logger.exception("frayer_translation_failed", language=language)
            raise GenerationError("Kon het Frayer model niet vertalen.") from e

    async def generate_quiz_questions(
        self, models: list[FrayerModel], words: list[str], practice: PracticeSettings
    ) -> list[QuizQuestion]:
        """One question per word; every third question becomes a writing question."""
        prompt = prompts.quiz_prompt(models, words)
        model_name = self._model(practice)

        async def attempt() -> list[QuizQuestion]:
            result = await self.client.complete_json(prompt, QuizQuestionSet, model=model_name)
            if len(result.questions) != len(words):
                raise ValueError("Ongeldige quizdata ontvangen van de AI.")
            return result.questions

        raw = await self._retry(attempt, "de quiz")

        questions = []
        for index, question in enumerate(raw):
            if index % WRITING_QUESTION_EVERY == 0:
                word = words[index]
                questions.append(QuizQuestion(
                    type=QuestionType.WRITING,
                    question=prompts.writing_question(word, models[index].definition),
                    options=[],
                    correct_index=-1,
                    word=word,
                ))
            else:
                questions.append(question.model_copy(update={"type": QuestionType.MULTIPLE_CHOICE}))
        logger.info("quiz_generated", questions=len(questions))
        return questions

    async def generate_feedback_for_error(
        self, question: str, user_answer: str, correct_answer: str
    ) -> str:
        try:
            return await self.client.complete_text(
                prompts.error_feedback_prompt(question, user_answer, correct_answer),
                model=self.settings.fast_model,
            )
        except Exception:
            logger.warning("error_feedback_failed", exc_info=True)
            return prompts.ERROR_FEEDBACK_FALLBACK

    async def simplify_question(self, question: str) -> str:
        return await self.client.complete_text(
            prompts.simplify_prompt(question), model=self.settings.fast_model
        )

    async def generate_story(
        self, words: list[str], theme: str, practice: PracticeSettings
    ) -> StoryData:
        try:
            return await self.client.complete_json(
                prompts.story_prompt(words, theme, practice.context, practice.difficulty),
                StoryData,
                model=self._model(practice),
            )
        except Exception as e:
            logger.exception("story_generation_failed")
            raise GenerationError("Kon het verhaal niet genereren.") from e

    async def generate_funny_theme(self, words: list[str], practice: PracticeSettings) -> str:
        try:
            return await self.client.complete_text(
                prompts.theme_prompt(words, practice.context),
                model=self._model(practice),
                temperature=1.0,
            )
        except Exception as e:
            logger.exception("theme_generation_failed")
            raise GenerationError("Kon geen thema bedenken.") from e

    async def evaluate_comprehension(
        self, story: str, summary: str, practice: PracticeSettings
    ) -> str:
        try:
            return await self.client.complete_text(
                f"Evalueer de samenvatting van de student.\nVERHAAL: {story}\nSAMENVATTING: {summary}",
                model=self._model(practice),
                system=prompts.EVALUATION_SYSTEM_PROMPT,
            )
        except Exception as e:
            logger.exception("comprehension_evaluation_failed")
            raise GenerationError("Evaluatie mislukt") from e

    async def evaluate_reading_answer(
        self, story: str, question: str, answer: str, practice: PracticeSettings
    ) -> str:
        try:
            return await self.client.complete_text(
                f"Evalueer het antwoord.\nVERHAAL: {story}\nVRAAG: {question}\nANTWOORD: {answer}",
                model=self._model(practice),
                system=prompts.EVALUATION_SYSTEM_PROMPT,
            )
        except Exception as e:
            logger.exception("reading_evaluation_failed")
            raise GenerationError("Evaluatie mislukt") from e

    async def generate_didactic_analysis(self, session: SessionRecord, student_name: str) -> str:
        if session.timing_data is None:
            raise GenerationError("Geen timingdata.")
        results = json.dumps(
            [r.model_dump(by_alias=True) for r in session.quiz_results], ensure_ascii=False
        )
        prompt = prompts.didactic_analysis_prompt(
            student_name, results, session.timing_data.model_dump_json(by_alias=True)
        )
        return await self.client.complete_text(
            prompt, model=self.settings.model_for_tier(session.settings.ai_model or "fast")
        )

    async def extract_key_terms(self, text: str, practice: PracticeSettings) -> list[str]:
        """Deduplicated, lowercased, sorted key terms found in ``text``."""
        truncated = text[: self.settings.max_extract_chars]
        try:
            result = await self.client.complete_json(
                prompts.key_terms_prompt(truncated),
                KeyTerms,
                model=self._model(practice),
                temperature=0.2,
            )
        except Exception as e:
            logger.exception("key_term_extraction_failed")
            raise GenerationError("Kon de sleuteltermen niet uit de tekst halen.") from e
        terms = {term.lower().strip() for term in result.terms if term.strip()}
        return sorted(terms)

    async def synthesize_speech(self, text: str) -> bytes:
        """Speak ``text`` and return a WAV file."""
        pcm = await self.client.synthesize(
            text, model=self.settings.tts_model, voice=self.settings.tts_voice
        )
        if not pcm:
            raise GenerationError("Geen audiodata ontvangen van AI.")
        return float32_to_wav(pcm16_to_float32(pcm), sample_rate=TTS_SAMPLE_RATE)


def parse_feedback_sections(text: str) -> list[FeedbackSection]:
    """Split evaluative prose on ``### `` headers into titled sections."""
    sections: list[FeedbackSection] = []
    title = DEFAULT_FEEDBACK_TITLE
    lines: list[str] = []
    for line in text.splitlines():
        if line.startswith("###"):
            if "\n".join(lines).strip():
                sections.append(FeedbackSection(title=title, content="\n".join(lines).strip()))
            title = line.lstrip("#").strip()
            lines = []
        else:
            lines.append(line)
    if "\n".join(lines).strip():
        sections.append(FeedbackSection(title=title, content="\n".join(lines).strip()))
    return sections
