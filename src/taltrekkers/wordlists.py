"""Predefined word lists, curated study cards and avatar catalogue."""

import functools

from taltrekkers.config import load_predefined_models, load_word_lists
from taltrekkers.models.profile import Avatar, Course
from taltrekkers.models.study import FrayerModel


def list_names() -> list[str]:
    return list(load_word_lists().get("lists", {}))


def get_word_list(name: str) -> list[str]:
    lists = load_word_lists().get("lists", {})
    if name not in lists:
        raise KeyError(name)
    return list(lists[name])


def all_predefined_words() -> list[str]:
    words: dict[str, None] = {}
    for name in list_names():
        for word in get_word_list(name):
            words.setdefault(word, None)
    return list(words)


def difficulty_for(context: str | None) -> str | None:
    if not context:
        return None
    return load_word_lists().get("difficulty_map", {}).get(context)


def session_options() -> dict:
    return load_word_lists().get("session", {})


@functools.lru_cache(maxsize=1)
def avatars() -> list[Avatar]:
    return [Avatar(**a) for a in load_word_lists().get("avatars", [])]


def find_avatar(avatar_id: str) -> Avatar | None:
    return next((a for a in avatars() if a.id == avatar_id), None)


@functools.lru_cache(maxsize=1)
def predefined_models() -> dict[str, FrayerModel]:
    return {
        word.lower(): FrayerModel.model_validate(data)
        for word, data in load_predefined_models().items()
    }


def course_catalogue() -> dict:
    return load_word_lists().get("courses", {})


@functools.lru_cache(maxsize=1)
def all_courses() -> list[Course]:
    """Every course, flattened from the per-track tables and the AF subject structure."""
    catalogue = course_catalogue()
    courses = []
    for finaliteit, years in catalogue.get("tracks", {}).items():
        for jaargang, entries in years.items():
            courses += [Course(finaliteit=finaliteit, jaargang=jaargang, **c) for c in entries]
    for jaargang, structure in catalogue.get("af_subjects", {}).items():
        courses += [
            Course(finaliteit="AF", jaargang=jaargang, group="Basisvorming", **c)
            for c in structure.get("basisvorming", [])
        ]
        for track in structure.get("specifiek", []):
            courses += [
                Course(finaliteit="AF", jaargang=jaargang, group=track["name"], **c)
                for c in track.get("vakken", [])
            ]
    return courses


def courses(finaliteit: str | None = None, jaargang: str | None = None) -> list[Course]:
    return [
        c for c in all_courses()
        if (finaliteit is None or c.finaliteit == finaliteit)
        and (jaargang is None or c.jaargang == jaargang)
    ]


def find_course(course_id: str) -> Course | None:
    return next((c for c in all_courses() if c.id == course_id), None)
