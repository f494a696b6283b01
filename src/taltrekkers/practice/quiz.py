"""Quiz evaluation: answer checking, per-question timing and the shared hint budget."""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from taltrekkers.ai.service import GenerationService
from taltrekkers.errors import GenerationError, HintUnavailable, InvalidTransition
from taltrekkers.models.profile import ItemTiming, QuizResult
from taltrekkers.models.study import QuestionType, QuizQuestion

logger = structlog.get_logger()

HINT_BUDGET = 5
FIFTY_FIFTY_ELIMINATES = 2


@dataclass
class AnswerOutcome:
    correct: bool
    correct_answer: str
    feedback: str | None = None


def is_correct_text_answer(answer: str, word: str) -> bool:
    return answer.strip().lower() == word.strip().lower()


class QuizRunner:
    """Walks a student through a list of questions.

    The timer for a question starts when it is presented and is recorded when the
    student moves on, whether or not the answer was correct.

    Args:
        questions: Questions in presentation order.
        generator: Used for wrong-answer feedback and question simplification.
        hint_budget: Hints shared across the whole quiz.
        clock: Monotonic time source in seconds.
        rng: Randomness for the 50/50 hint.
    """

    def __init__(
        self,
        questions: list[QuizQuestion],
        generator: GenerationService | None = None,
        hint_budget: int = HINT_BUDGET,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ):
        self.questions = questions
        self.generator = generator
        self.hints_remaining = hint_budget
        self._clock = clock
        self._rng = rng or random.Random()

        self.index = 0
        self.results: list[QuizResult] = []
        self.timings: list[ItemTiming] = []
        self.eliminated: list[int] = []
        self.simplified: dict[str, str] = {}
        self.is_answered = False
        self.completed = not questions
        self._started_at = clock()

    @property
    def current(self) -> QuizQuestion:
        if self.completed:
            raise InvalidTransition("De quiz is al afgelopen.")
        return self.questions[self.index]

    @property
    def score(self) -> int:
        return sum(1 for r in self.results if r.correct)

    @property
    def word_bank(self) -> list[str]:
        """Sorted target words, shown as a hint list for writing questions."""
        return sorted(q.word for q in self.questions)

    def _require_open_question(self) -> QuizQuestion:
        question = self.current
        if self.is_answered:
            raise InvalidTransition("Deze vraag is al beantwoord.")
        return question

    async def _record(self, question: QuizQuestion, correct: bool, given: str) -> AnswerOutcome:
        self.is_answered = True
        self.results.append(QuizResult(word=question.word, correct=correct))
        feedback = None
        if not correct and self.generator is not None:
            feedback = await self.generator.generate_feedback_for_error(
                question.question, given, question.word
            )
        return AnswerOutcome(correct=correct, correct_answer=question.word, feedback=feedback)

    async def answer_choice(self, option_index: int) -> AnswerOutcome:
        question = self._require_open_question()
        if question.type is not QuestionType.MULTIPLE_CHOICE:
            raise InvalidTransition("Deze vraag verwacht een geschreven antwoord.")
        if option_index in self.eliminated:
            raise InvalidTransition("Deze optie is weggestreept.")
        if not 0 <= option_index < len(question.options):
            raise InvalidTransition("Ongeldige optie.")
        correct = option_index == question.correct_index
        return await self._record(question, correct, question.options[option_index])

    async def answer_text(self, answer: str) -> AnswerOutcome:
        question = self._require_open_question()
        if question.type is not QuestionType.WRITING:
            raise InvalidTransition("Deze vraag verwacht een meerkeuzeantwoord.")
        if not answer.strip():
            raise InvalidTransition("Vul eerst een antwoord in.")
        return await self._record(question, is_correct_text_answer(answer, question.word), answer)

    def use_fifty_fifty(self) -> list[int]:
        """Eliminate two incorrect options of the current multiple-choice question."""
        question = self._require_open_question()
        if question.type is not QuestionType.MULTIPLE_CHOICE:
            raise HintUnavailable("50/50 kan alleen bij meerkeuzevragen.")
        if self.eliminated:
            raise HintUnavailable("Er zijn al opties weggestreept.")
        if self.hints_remaining <= 0:
            raise HintUnavailable("Geen hints meer over.")

        self.hints_remaining -= 1
        incorrect = [i for i in range(len(question.options)) if i != question.correct_index]
        self.eliminated = self._rng.sample(incorrect, min(FIFTY_FIFTY_ELIMINATES, len(incorrect)))
        return self.eliminated

    async def simplify(self) -> str:
        """Simpler wording of the current question.

        Costs one hint unless the same question was simplified before; the hint is
        refunded when generation fails.
        """
        question = self._require_open_question()
        cached = self.simplified.get(question.question)
        if cached is not None:
            return cached
        if self.hints_remaining <= 0:
            raise HintUnavailable("Geen hints meer over.")
        if self.generator is None:
            raise HintUnavailable("Vereenvoudigen is niet beschikbaar.")

        self.hints_remaining -= 1
        try:
            text = await self.generator.simplify_question(question.question)
        except Exception as e:
            self.hints_remaining += 1
            logger.warning("simplify_failed", word=question.word, error=str(e))
            raise GenerationError("Kon de vraag niet vereenvoudigen.") from e
        self.simplified[question.question] = text
        return text

    def next_question(self) -> bool:
        """Acknowledge the answer and move on. Returns True once the quiz is complete."""
        question = self.current
        if not self.is_answered:
            raise InvalidTransition("Beantwoord eerst de vraag.")
        now = self._clock()
        self.timings.append(ItemTiming(word=question.word, seconds=now - self._started_at))

        self.is_answered = False
        self.eliminated = []
        if self.index < len(self.questions) - 1:
            self.index += 1
            self._started_at = now
        else:
            self.completed = True
        return self.completed
