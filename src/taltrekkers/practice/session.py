"""Practice orchestration: study material → study phase → quiz → completion."""

import asyncio
import random
import time
from collections.abc import Callable
from enum import StrEnum

import structlog

from taltrekkers.ai.service import GenerationService
from taltrekkers.errors import AppError, InvalidTransition, categorize_error
from taltrekkers.models.profile import ItemTiming, PracticeSettings, SessionTimingData, StudyMode
from taltrekkers.models.study import FrayerModel, QuizQuestion
from taltrekkers.practice.quiz import QuizRunner
from taltrekkers.progress.merge import SessionOutcome

logger = structlog.get_logger()


class SessionPhase(StrEnum):
    LOADING = "loading"
    STUDY_MODE_SELECTION = "study_mode_selection"
    STUDYING = "studying"
    QUIZ = "quiz"
    COMPLETE = "complete"
    ERROR = "error"


class PracticeSession:
    """State machine for one student's practice session.

    Study material for every word is fetched concurrently and joined before the single
    quiz-generation call; the first failing fetch cancels the others. Any failure parks
    the session in ``ERROR``; ``retry`` starts the whole batch over. ``last_activity``
    is refreshed on every access so idle sessions can be evicted.

    Args:
        session_id: Identifier handed to the client.
        user_name: Display name the result is merged under.
        words: Words to practice, in study order.
        settings: Frozen practice settings.
        generator: Generation facade.
        predefined: Curated models keyed by lowercase word; these skip generation.
        clock: Monotonic time source in seconds.
        rng: Randomness for question order and hints.
    """

    def __init__(
        self,
        session_id: str,
        user_name: str,
        words: list[str],
        settings: PracticeSettings,
        generator: GenerationService,
        predefined: dict[str, FrayerModel] | None = None,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ):
        if not words:
            raise ValueError("A practice session needs at least one word")
        self.session_id = session_id
        self.user_name = user_name
        self.words = list(words)
        self.settings = settings
        self.generator = generator
        self.predefined = predefined or {}
        self._clock = clock
        self._rng = rng or random.Random()

        self.phase = SessionPhase.LOADING
        self.error: AppError | None = None
        self.last_activity = clock()
        self.models: list[FrayerModel] = []
        self.translations: dict[int, FrayerModel] = {}
        self.questions: list[QuizQuestion] = []
        self.study_mode: StudyMode | None = None
        self.quiz: QuizRunner | None = None

        self.current_word: int | None = None
        self.furthest_word = -1
        self._study_items: dict[str, float] = {}
        self._viewed_at: float | None = None
        self._study_started: float | None = None
        self._study_finished: float | None = None
        self._quiz_started: float | None = None
        self._quiz_finished: float | None = None

    def _require(self, *phases: SessionPhase) -> None:
        if self.phase not in phases:
            raise InvalidTransition(
                f"Actie niet mogelijk in fase '{self.phase}' "
                f"(verwacht: {', '.join(str(p) for p in phases)})."
            )

    async def _model_for(self, word: str) -> FrayerModel:
        curated = self.predefined.get(word.lower())
        if curated is not None:
            return curated
        return await self.generator.generate_frayer_model(word, self.settings)

    def touch(self) -> None:
        self.last_activity = self._clock()

    def is_idle(self, ttl_seconds: float) -> bool:
        """True when nothing happened on this session for longer than ``ttl_seconds``."""
        return self._clock() - self.last_activity > ttl_seconds

    async def _fetch_models(self) -> list[FrayerModel]:
        """Fetch every word's model concurrently; the first failure cancels the rest."""
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(self._model_for(w)) for w in self.words]
        except ExceptionGroup as eg:
            raise eg.exceptions[0]
        return [t.result() for t in tasks]

    async def prepare(self) -> None:
        """Fetch all study material and the quiz."""
        self._require(SessionPhase.LOADING, SessionPhase.ERROR)
        self.phase = SessionPhase.LOADING
        self.error = None
        try:
            models = await self._fetch_models()
            questions = await self.generator.generate_quiz_questions(
                models, self.words, self.settings
            )
        except Exception as e:
            self.error = categorize_error(e, "practice_setup")
            self.phase = SessionPhase.ERROR
            self.touch()
            logger.exception(
                "practice_setup_failed",
                session_id=self.session_id,
                category=str(self.error.category),
            )
            return

        self.models = models
        self.questions = list(questions)
        self._rng.shuffle(self.questions)
        self.touch()
        self.phase = SessionPhase.STUDY_MODE_SELECTION
        logger.info("practice_ready", session_id=self.session_id, words=len(self.words))

    async def retry(self) -> None:
        self._require(SessionPhase.ERROR)
        await self.prepare()

    async def translate_model(self, index: int) -> FrayerModel:
        """Study card ``index`` in the student's native language (cached)."""
        self._require(SessionPhase.STUDY_MODE_SELECTION, SessionPhase.STUDYING)
        if not self.settings.native_language:
            raise InvalidTransition("Geen moedertaal ingesteld voor vertaling.")
        if index not in self.translations:
            self.translations[index] = await self.generator.translate_frayer_model(
                self.models[index], self.settings.native_language, self.settings
            )
        return self.translations[index]

    def choose_study_mode(self, mode: StudyMode) -> None:
        self._require(SessionPhase.STUDY_MODE_SELECTION)
        self.study_mode = StudyMode(mode)
        self.phase = SessionPhase.STUDYING
        self._study_started = self._clock()
        self.view_word(0)

    def _close_current_view(self, now: float, seconds: float | None = None) -> None:
        if self.current_word is None or self._viewed_at is None:
            return
        elapsed = seconds if seconds is not None else now - self._viewed_at
        word = self.words[self.current_word]
        self._study_items[word] = self._study_items.get(word, 0.0) + elapsed

    def view_word(self, index: int, seconds: float | None = None) -> None:
        """Show study card ``index``; time on the previous card is accumulated per word.

        ``seconds`` is the client-measured time on the previous card; the server clock
        is used when it is omitted.
        """
        self._require(SessionPhase.STUDYING)
        if not 0 <= index < len(self.words):
            raise InvalidTransition("Ongeldige woordindex.")
        now = self._clock()
        self._close_current_view(now, seconds)
        self.current_word = index
        self._viewed_at = now
        self.furthest_word = max(self.furthest_word, index)

    @property
    def all_words_viewed(self) -> bool:
        return self.furthest_word >= len(self.words) - 1

    def finish_study(self) -> QuizRunner:
        self._require(SessionPhase.STUDYING)
        if not self.all_words_viewed:
            raise InvalidTransition("Bekijk eerst alle woorden voor je aan de quiz begint.")
        now = self._clock()
        self._close_current_view(now)
        self.current_word = None
        self._study_finished = now
        self._quiz_started = now
        self.quiz = QuizRunner(
            self.questions, generator=self.generator, clock=self._clock, rng=self._rng
        )
        self.phase = SessionPhase.QUIZ
        if self.quiz.completed:
            self._quiz_finished = now
            self.phase = SessionPhase.COMPLETE
        return self.quiz

    def next_question(self) -> bool:
        """Acknowledge the current answer. Returns True once the session is complete."""
        self._require(SessionPhase.QUIZ)
        if self.quiz.next_question():
            self._quiz_finished = self._clock()
            self.phase = SessionPhase.COMPLETE
            logger.info(
                "practice_complete",
                session_id=self.session_id,
                score=self.quiz.score,
                questions=len(self.questions),
            )
        return self.phase is SessionPhase.COMPLETE

    def timing_data(self) -> SessionTimingData:
        def span(start: float | None, end: float | None) -> float:
            if start is None:
                return 0.0
            return (end if end is not None else self._clock()) - start

        return SessionTimingData(
            study_phase_seconds=span(self._study_started, self._study_finished),
            quiz_phase_seconds=span(self._quiz_started, self._quiz_finished),
            study_items=[ItemTiming(word=w, seconds=s) for w, s in self._study_items.items()],
            quiz_items=list(self.quiz.timings) if self.quiz else [],
        )

    def outcome(self) -> SessionOutcome:
        self._require(SessionPhase.COMPLETE)
        return SessionOutcome(
            score=self.quiz.score,
            quiz_results=list(self.quiz.results),
            frayer_models=list(self.models),
            study_mode=self.study_mode,
            timing_data=self.timing_data(),
            practice_words=list(self.words),
            settings=self.settings,
        )
