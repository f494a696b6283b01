"""Tests for the quiz runner: answers, hints and timing."""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from taltrekkers.errors import GenerationError, HintUnavailable, InvalidTransition
from taltrekkers.models.study import QuestionType, QuizQuestion
from taltrekkers.practice.quiz import HINT_BUDGET, QuizRunner, is_correct_text_answer


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _mc(word: str, correct_index: int = 1) -> QuizQuestion:
    return QuizQuestion(
        question=f"Wat betekent {word}?",
        options=["a", "b", "c", "d"],
        correct_index=correct_index,
        word=word,
    )


def _write(word: str) -> QuizQuestion:
    return QuizQuestion(
        type=QuestionType.WRITING,
        question="Typ het woord dat past bij deze definitie: ...",
        word=word,
    )


@pytest.fixture
def generator():
    gen = MagicMock()
    gen.generate_feedback_for_error = AsyncMock(return_value="Kijk naar de definitie.")
    gen.simplify_question = AsyncMock(return_value="Eenvoudiger vraag")
    return gen


class TestTextAnswer:
    def test_case_and_whitespace_insensitive(self):
        assert is_correct_text_answer("  Hypothese ", "hypothese")

    def test_different_word(self):
        assert not is_correct_text_answer("hypotheses", "hypothese")


class TestAnswering:
    async def test_correct_choice(self, generator):
        quiz = QuizRunner([_mc("kat")], generator=generator)
        outcome = await quiz.answer_choice(1)

        assert outcome.correct
        assert outcome.feedback is None
        assert quiz.score == 1
        generator.generate_feedback_for_error.assert_not_awaited()

    async def test_wrong_choice_fetches_feedback(self, generator):
        quiz = QuizRunner([_mc("kat")], generator=generator)
        outcome = await quiz.answer_choice(0)

        assert not outcome.correct
        assert outcome.correct_answer == "kat"
        assert outcome.feedback == "Kijk naar de definitie."
        generator.generate_feedback_for_error.assert_awaited_once_with("Wat betekent kat?", "a", "kat")

    async def test_writing_answer(self, generator):
        quiz = QuizRunner([_write("hypothese")], generator=generator)
        outcome = await quiz.answer_text("Hypothese")
        assert outcome.correct
        assert quiz.results[0].word == "hypothese"

    async def test_empty_writing_answer_rejected(self, generator):
        quiz = QuizRunner([_write("hypothese")], generator=generator)
        with pytest.raises(InvalidTransition):
            await quiz.answer_text("   ")
        assert quiz.results == []

    async def test_wrong_question_type(self, generator):
        quiz = QuizRunner([_write("hypothese")], generator=generator)
        with pytest.raises(InvalidTransition):
            await quiz.answer_choice(0)

    async def test_cannot_answer_twice(self, generator):
        quiz = QuizRunner([_mc("kat"), _mc("hond")], generator=generator)
        await quiz.answer_choice(1)
        with pytest.raises(InvalidTransition):
            await quiz.answer_choice(1)

    async def test_next_requires_answer(self, generator):
        quiz = QuizRunner([_mc("kat")], generator=generator)
        with pytest.raises(InvalidTransition):
            quiz.next_question()

    def test_word_bank_sorted(self):
        quiz = QuizRunner([_mc("vis"), _write("aap"), _mc("kat")])
        assert quiz.word_bank == ["aap", "kat", "vis"]

    def test_empty_quiz_is_complete(self):
        assert QuizRunner([]).completed


class TestTiming:
    async def test_timing_recorded_on_next(self, generator):
        clock = FakeClock()
        quiz = QuizRunner([_mc("kat"), _mc("hond")], generator=generator, clock=clock)

        clock.advance(4)
        await quiz.answer_choice(0)
        clock.advance(6)
        assert quiz.timings == []
        assert quiz.next_question() is False

        clock.advance(3)
        await quiz.answer_choice(1)
        clock.advance(1)
        assert quiz.next_question() is True

        assert [(t.word, t.seconds) for t in quiz.timings] == [("kat", 10), ("hond", 4)]
        assert quiz.completed

    async def test_results_match_answers(self, generator):
        quiz = QuizRunner([_mc("kat"), _mc("hond"), _write("vis")], generator=generator)
        await quiz.answer_choice(1)
        quiz.next_question()
        await quiz.answer_choice(2)
        quiz.next_question()
        await quiz.answer_text("vis")
        quiz.next_question()

        assert [(r.word, r.correct) for r in quiz.results] == [
            ("kat", True),
            ("hond", False),
            ("vis", True),
        ]
        assert quiz.score == 2


class TestHints:
    def test_fifty_fifty_removes_two_wrong_options(self):
        quiz = QuizRunner([_mc("kat", correct_index=2)], rng=random.Random(3))
        eliminated = quiz.use_fifty_fifty()

        assert len(eliminated) == 2
        assert 2 not in eliminated
        assert quiz.hints_remaining == HINT_BUDGET - 1

    def test_fifty_fifty_once_per_question(self):
        quiz = QuizRunner([_mc("kat")])
        quiz.use_fifty_fifty()
        with pytest.raises(HintUnavailable):
            quiz.use_fifty_fifty()
        assert quiz.hints_remaining == HINT_BUDGET - 1

    def test_fifty_fifty_not_for_writing(self):
        quiz = QuizRunner([_write("kat")])
        with pytest.raises(HintUnavailable):
            quiz.use_fifty_fifty()

    async def test_eliminated_option_cannot_be_chosen(self):
        quiz = QuizRunner([_mc("kat", correct_index=0)])
        eliminated = quiz.use_fifty_fifty()
        with pytest.raises(InvalidTransition):
            await quiz.answer_choice(eliminated[0])

    async def test_budget_exhausted(self, generator):
        quiz = QuizRunner([_mc("kat"), _mc("hond")], generator=generator, hint_budget=1)
        quiz.use_fifty_fifty()
        await quiz.answer_choice(1)
        quiz.next_question()

        assert quiz.eliminated == []
        with pytest.raises(HintUnavailable):
            quiz.use_fifty_fifty()

    async def test_simplify_cached_is_free(self, generator):
        quiz = QuizRunner([_mc("kat")], generator=generator)
        assert await quiz.simplify() == "Eenvoudiger vraag"
        assert await quiz.simplify() == "Eenvoudiger vraag"

        assert quiz.hints_remaining == HINT_BUDGET - 1
        generator.simplify_question.assert_awaited_once()

    async def test_simplify_failure_refunds_hint(self, generator):
        generator.simplify_question.side_effect = RuntimeError("boom")
        quiz = QuizRunner([_mc("kat")], generator=generator)

        with pytest.raises(GenerationError):
            await quiz.simplify()
        assert quiz.hints_remaining == HINT_BUDGET

    async def test_no_hints_after_answer(self, generator):
        quiz = QuizRunner([_mc("kat")], generator=generator)
        await quiz.answer_choice(1)
        with pytest.raises(InvalidTransition):
            quiz.use_fifty_fifty()
