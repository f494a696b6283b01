"""Tests for the practice session state machine."""

import asyncio
import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from taltrekkers.errors import ErrorCategory, InvalidTransition
from taltrekkers.models.profile import PracticeSettings, StudyMode
from taltrekkers.models.study import FrayerExample, FrayerModel, QuestionType, QuizQuestion
from taltrekkers.practice.session import PracticeSession, SessionPhase

WORDS = ["kat", "hond", "vis"]


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _model(word: str) -> FrayerModel:
    return FrayerModel(
        definition=f"betekenis van {word}",
        examples=[FrayerExample(sentence=f"De {word} is hier.", used_word=word)],
    )


def _questions(words: list[str]) -> list[QuizQuestion]:
    return [
        QuizQuestion(question=f"Vraag {w}", options=["a", "b", "c", "d"], correct_index=0, word=w)
        for w in words
    ]


@pytest.fixture
def generator():
    gen = MagicMock()
    gen.generate_frayer_model = AsyncMock(side_effect=lambda word, settings: _model(word))
    gen.generate_quiz_questions = AsyncMock(
        side_effect=lambda models, words, settings: _questions(words)
    )
    gen.translate_frayer_model = AsyncMock(return_value=_model("vertaald"))
    gen.generate_feedback_for_error = AsyncMock(return_value="feedback")
    return gen


@pytest.fixture
def clock():
    return FakeClock()


def _session(generator, clock, words=WORDS, settings=None, predefined=None):
    return PracticeSession(
        "s1",
        "Anna",
        words,
        settings or PracticeSettings(native_language="Engels"),
        generator,
        predefined=predefined,
        clock=clock,
        rng=random.Random(1),
    )


async def _run_quiz(session, answer_index=0):
    while session.phase is SessionPhase.QUIZ:
        await session.quiz.answer_choice(answer_index)
        session.next_question()


class TestPrepare:
    async def test_ready_after_prepare(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()

        assert session.phase is SessionPhase.STUDY_MODE_SELECTION
        assert [m.definition for m in session.models] == [f"betekenis van {w}" for w in WORDS]
        assert sorted(q.word for q in session.questions) == sorted(WORDS)
        assert generator.generate_frayer_model.await_count == 3

    async def test_predefined_models_skip_generation(self, generator, clock):
        curated = _model("zuurstof")
        session = _session(generator, clock, words=["Zuurstof", "kat"], predefined={"zuurstof": curated})
        await session.prepare()

        assert session.models[0] is curated
        generator.generate_frayer_model.assert_awaited_once()

    async def test_failure_parks_in_error(self, generator, clock):
        generator.generate_frayer_model.side_effect = RuntimeError("Failed to fetch")
        session = _session(generator, clock)
        await session.prepare()

        assert session.phase is SessionPhase.ERROR
        assert session.error.category is ErrorCategory.NETWORK
        assert session.error.can_retry

    async def test_retry_recovers(self, generator, clock):
        generator.generate_quiz_questions.side_effect = [
            ValueError("Ongeldige JSON"),
            _questions(WORDS),
        ]
        session = _session(generator, clock)
        await session.prepare()
        assert session.phase is SessionPhase.ERROR
        assert session.error.category is ErrorCategory.PARSE_ERROR

        await session.retry()
        assert session.phase is SessionPhase.STUDY_MODE_SELECTION
        assert session.error is None

    async def test_retry_only_from_error(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()
        with pytest.raises(InvalidTransition):
            await session.retry()

    async def test_failure_cancels_pending_fetches(self, generator, clock):
        cancelled = []

        async def fetch(word, settings):
            if word == "vis":
                await asyncio.sleep(0)
                raise RuntimeError("Failed to fetch")
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(word)
                raise

        generator.generate_frayer_model.side_effect = fetch
        session = _session(generator, clock)
        await session.prepare()

        assert session.phase is SessionPhase.ERROR
        assert session.error.category is ErrorCategory.NETWORK
        assert sorted(cancelled) == ["hond", "kat"]
        generator.generate_quiz_questions.assert_not_awaited()

    def test_empty_word_list_rejected(self, generator, clock):
        with pytest.raises(ValueError):
            _session(generator, clock, words=[])


class TestStudyPhase:
    async def test_must_view_all_words_before_quiz(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()
        session.choose_study_mode(StudyMode.FLASHCARDS)
        session.view_word(1)

        with pytest.raises(InvalidTransition):
            session.finish_study()

        session.view_word(2)
        session.finish_study()
        assert session.phase is SessionPhase.QUIZ

    async def test_study_time_accumulates_per_word(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()
        session.choose_study_mode(StudyMode.FRAYER)
        clock.advance(5)
        session.view_word(1)
        clock.advance(3)
        session.view_word(0)
        clock.advance(2)
        session.view_word(2)
        clock.advance(4)
        session.finish_study()

        timing = session.timing_data()
        assert {t.word: t.seconds for t in timing.study_items} == {"kat": 7, "hond": 3, "vis": 4}
        assert timing.study_phase_seconds == 14

    async def test_client_reported_seconds(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()
        session.choose_study_mode(StudyMode.FRAYER)
        clock.advance(50)
        session.view_word(1, seconds=8.5)

        assert session.timing_data().study_items[0].seconds == 8.5

    async def test_invalid_index(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()
        session.choose_study_mode(StudyMode.FRAYER)
        with pytest.raises(InvalidTransition):
            session.view_word(3)

    async def test_translation_cached(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()
        first = await session.translate_model(0)
        second = await session.translate_model(0)

        assert first is second
        generator.translate_frayer_model.assert_awaited_once()

    async def test_translation_needs_native_language(self, generator, clock):
        session = _session(generator, clock, settings=PracticeSettings())
        await session.prepare()
        with pytest.raises(InvalidTransition):
            await session.translate_model(0)

    async def test_study_mode_requires_ready_session(self, generator, clock):
        session = _session(generator, clock)
        with pytest.raises(InvalidTransition):
            session.choose_study_mode(StudyMode.FRAYER)


class TestCompletion:
    async def test_full_flow_outcome(self, generator, clock):
        settings = PracticeSettings(context="Biologie")
        session = _session(generator, clock, settings=settings)
        await session.prepare()
        session.choose_study_mode(StudyMode.FRAYER)
        for i in range(len(WORDS)):
            clock.advance(2)
            session.view_word(i)
        session.finish_study()
        clock.advance(1)
        await _run_quiz(session)

        assert session.phase is SessionPhase.COMPLETE
        outcome = session.outcome()
        assert outcome.score == 3
        assert outcome.study_mode is StudyMode.FRAYER
        assert outcome.practice_words == WORDS
        assert outcome.settings is settings
        assert len(outcome.timing_data.quiz_items) == 3
        assert outcome.timing_data.quiz_phase_seconds == 1

    async def test_outcome_before_complete(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()
        with pytest.raises(InvalidTransition):
            session.outcome()

    async def test_no_questions_completes_immediately(self, generator, clock):
        generator.generate_quiz_questions.side_effect = None
        generator.generate_quiz_questions.return_value = []
        session = _session(generator, clock, words=["kat"])
        await session.prepare()
        session.choose_study_mode(StudyMode.FLASHCARDS)
        session.finish_study()

        assert session.phase is SessionPhase.COMPLETE
        assert session.outcome().score == 0

    async def test_writing_questions_in_flow(self, generator, clock):
        generator.generate_quiz_questions.side_effect = None
        generator.generate_quiz_questions.return_value = [
            QuizQuestion(type=QuestionType.WRITING, question="Typ het woord", word="kat")
        ]
        session = _session(generator, clock, words=["kat"])
        await session.prepare()
        session.choose_study_mode(StudyMode.FRAYER)
        session.finish_study()
        await session.quiz.answer_text("KAT")

        assert session.next_question() is True
        assert session.outcome().score == 1


class TestIdleTracking:
    async def test_idle_after_ttl(self, generator, clock):
        session = _session(generator, clock)
        await session.prepare()
        clock.advance(60)
        assert not session.is_idle(60)
        clock.advance(1)
        assert session.is_idle(60)

    async def test_touch_resets_idle_time(self, generator, clock):
        session = _session(generator, clock)
        clock.advance(100)
        session.touch()
        clock.advance(30)
        assert not session.is_idle(60)

    async def test_failed_prepare_counts_as_activity(self, generator, clock):
        async def slow_failure(word, settings):
            clock.advance(90)
            raise RuntimeError("Failed to fetch")

        generator.generate_frayer_model.side_effect = slow_failure
        session = _session(generator, clock, words=["kat"])
        await session.prepare()

        assert session.phase is SessionPhase.ERROR
        assert not session.is_idle(60)
