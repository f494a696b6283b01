"""Custom word lists: key-term extraction and practice-subset selection."""

import random

import structlog

from taltrekkers.ai.service import GenerationService
from taltrekkers.errors import ExtractionError
from taltrekkers.extraction.documents import clean_text
from taltrekkers.models.profile import PracticeSettings, WordListProgress

logger = structlog.get_logger()


async def extract_terms_from_text(
    text: str, generator: GenerationService, practice: PracticeSettings
) -> list[str]:
    """Run pasted or extracted text through key-term extraction."""
    text = clean_text(text)
    if not text:
        raise ExtractionError("Voer tekst in om te analyseren.")
    terms = await generator.extract_key_terms(text, practice)
    if not terms:
        raise ExtractionError("Geen geschikte termen gevonden. Probeer een langere tekst.")
    logger.info("terms_extracted", count=len(terms))
    return terms


def partition_terms(terms: list[str], practiced: set[str]) -> tuple[list[str], list[str]]:
    """Split ``terms`` into (new, already practiced); matching is case-insensitive.

    Terms that differ only in case collapse to their first spelling.
    """
    unique: dict[str, str] = {}
    for term in terms:
        unique.setdefault(term.lower(), term)
    fresh = [t for key, t in unique.items() if key not in practiced]
    seen = [t for key, t in unique.items() if key in practiced]
    return fresh, seen


def select_practice_words(
    terms: list[str],
    practiced_words: list[str] | set[str],
    length: int,
    rng: random.Random | None = None,
) -> list[str]:
    """Pick up to ``length`` words, preferring ones not practiced before.

    New words are sampled without replacement first; previously practiced words only
    top up the selection when there are not enough new ones. The result is shuffled.
    """
    rng = rng or random.Random()
    practiced = {w.lower() for w in practiced_words}
    fresh, seen = partition_terms(terms, practiced)

    selected = rng.sample(fresh, min(length, len(fresh)))
    needed = length - len(selected)
    if needed > 0:
        selected += rng.sample(seen, min(needed, len(seen)))
    rng.shuffle(selected)
    return selected


def list_progress_stats(progress: WordListProgress | None, all_words: list[str]) -> dict:
    """Practiced / total overview for one word list."""
    total = len(all_words)
    practiced = {w.lower() for w in progress.practiced_words} if progress else set()
    practiced_count = len(practiced)
    return {
        "total": total,
        "practiced": practiced_count,
        "practicedPercent": round(practiced_count / total * 100) if total else 0,
        "isFullyPracticed": total > 0 and practiced_count >= total,
    }
