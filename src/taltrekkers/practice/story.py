"""Story challenge: a generated story built from words the student already learned."""

import random

from taltrekkers.errors import InvalidTransition
from taltrekkers.models.profile import UserProfile
from taltrekkers.progress.merge import TEST_WORD_PREFIX

STORY_SAMPLE_SIZE = 15
STORY_MIN_WORDS = 5


def pick_story_words(profile: UserProfile, rng: random.Random | None = None) -> list[str]:
    """Sample up to 15 learned words, skipping seeded test words when possible."""
    rng = rng or random.Random()
    learned = list(profile.learned_words)
    real = [w for w in learned if not w.startswith(TEST_WORD_PREFIX)]
    pool = real if len(real) > STORY_MIN_WORDS else learned
    sample = rng.sample(pool, min(STORY_SAMPLE_SIZE, len(pool)))
    if len(sample) < STORY_MIN_WORDS:
        raise InvalidTransition(
            "Je hebt nog niet genoeg verschillende woorden geleerd voor de verhaaluitdaging."
        )
    return sample
