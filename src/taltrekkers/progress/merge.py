"""Fold finished practice sessions into cumulative user profiles.

Every function here is pure: inputs are never mutated and a new object is returned.
Callers own persistence.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from taltrekkers.models.profile import (
    AllUsersData,
    PracticeSettings,
    QuizResult,
    SessionRecord,
    SessionTimingData,
    StudyMode,
    UserProfile,
    WordListProgress,
    WordMasteryInfo,
    normalize_user_name,
)
from taltrekkers.models.study import FrayerModel

GENERAL_LIST_ID = "general"
TEST_USER = "test"
TEST_WORD_PREFIX = "test_woord_"


@dataclass(frozen=True)
class SessionOutcome:
    """Everything a finished practice session hands to the merge."""

    score: int
    quiz_results: list[QuizResult]
    frayer_models: list[FrayerModel]
    study_mode: StudyMode
    timing_data: SessionTimingData
    practice_words: list[str]
    settings: PracticeSettings
    finished_at: datetime = field(default_factory=datetime.now)


def local_list_id(settings: PracticeSettings) -> str:
    return settings.custom_file_name or settings.context or GENERAL_LIST_ID


def next_streak(streak: int, last_practice: datetime | None, today: date) -> int:
    """Consecutive-day streak after practicing on ``today``."""
    if last_practice is None:
        return 1
    last_day = last_practice.date()
    if last_day == today:
        return streak
    if last_day == today - timedelta(days=1):
        return streak + 1
    return 1


def merge_session(profile: UserProfile | None, outcome: SessionOutcome) -> UserProfile:
    """Return ``profile`` with ``outcome`` applied.

    Not idempotent: merging the same outcome twice counts its quiz results twice.
    Quiz results for words that are not in ``learned_words`` are dropped.
    """
    base = profile or UserProfile()
    now = outcome.finished_at

    record = SessionRecord(
        date=now,
        words=list(outcome.practice_words),
        score=outcome.score,
        quiz_results=list(outcome.quiz_results),
        settings=outcome.settings,
        study_mode=outcome.study_mode,
        timing_data=outcome.timing_data,
    )

    learned = {word: info.model_copy() for word, info in base.learned_words.items()}
    for word, model in zip(outcome.practice_words, outcome.frayer_models):
        key = word.lower()
        if key not in learned and model.definition:
            learned[key] = WordMasteryInfo(definition=model.definition)

    for result in outcome.quiz_results:
        info = learned.get(result.word.lower())
        if info is None:
            continue
        if result.correct:
            info.correct += 1
        else:
            info.incorrect += 1

    list_id = local_list_id(outcome.settings)
    existing = base.word_list_progress.get(list_id)
    practiced = list(existing.practiced_words) if existing else []
    seen = set(practiced)
    for word in outcome.practice_words:
        key = word.lower()
        if key not in seen:
            seen.add(key)
            practiced.append(key)

    list_progress = WordListProgress(
        list_id=list_id,
        all_words=list(existing.all_words) if existing else list(outcome.practice_words),
        practiced_words=practiced,
        last_practiced=now,
    )

    return base.model_copy(update={
        "mastered_words": len(learned),
        "total_score": base.total_score + outcome.score,
        "session_history": [record, *base.session_history],
        "learned_words": learned,
        "streak": next_streak(base.streak, base.last_practice_date, now.date()),
        "last_practice_date": now,
        "points": base.points + outcome.score,
        "word_list_progress": {**base.word_list_progress, list_id: list_progress},
    })


def apply_session(
    all_users: AllUsersData, user_name: str, outcome: SessionOutcome
) -> AllUsersData:
    key = normalize_user_name(user_name)
    return {**all_users, key: merge_session(all_users.get(key), outcome)}


def delete_session(
    all_users: AllUsersData, user_name: str, session_date: datetime
) -> AllUsersData:
    key = normalize_user_name(user_name)
    profile = all_users.get(key)
    if profile is None:
        return all_users
    history = [s for s in profile.session_history if s.date != session_date]
    if len(history) == len(profile.session_history):
        return all_users
    return {**all_users, key: profile.model_copy(update={"session_history": history})}


def update_avatar(all_users: AllUsersData, user_name: str, avatar_id: str) -> AllUsersData:
    key = normalize_user_name(user_name)
    profile = all_users.get(key)
    if profile is None:
        return all_users
    return {**all_users, key: profile.model_copy(update={"avatar_id": avatar_id})}


def seed_test_user(
    all_users: AllUsersData, words: list[str], threshold: int, margin: int = 50
) -> AllUsersData:
    """Make sure the ``test`` account has enough learned words for the story challenge."""
    existing = all_users.get(TEST_USER)
    if existing is not None and len(existing.learned_words) >= threshold:
        return all_users

    learned = dict(existing.learned_words) if existing else {}
    for word in words:
        learned.setdefault(
            word.lower(),
            WordMasteryInfo(definition=f"Definitie van {word}", correct=1),
        )
    needed = threshold - len(learned) + margin
    for i in range(max(needed, 0)):
        learned[f"{TEST_WORD_PREFIX}{i}"] = WordMasteryInfo(
            definition=f"Dit is een automatisch gegenereerd testwoord nummer {i}",
            correct=5,
        )

    base = existing or UserProfile()
    seeded = base.model_copy(update={
        "learned_words": learned,
        "mastered_words": len(learned),
        "total_score": base.total_score or 5000,
        "points": base.points or 5000,
    })
    return {**all_users, TEST_USER: seeded}
