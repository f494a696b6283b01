"""REST API routes for profiles, dashboards, feedback and speech."""

import secrets
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Response
from pydantic import BaseModel

from taltrekkers.ai.service import GenerationService, parse_feedback_sections
from taltrekkers.api.deps import get_generator, get_remote, get_store
from taltrekkers.config import get_settings
from taltrekkers.extraction.terms import list_progress_stats
from taltrekkers.models.profile import CamelModel, UserProfile, normalize_user_name
from taltrekkers.progress.merge import delete_session, update_avatar
from taltrekkers.remote.supabase_store import RemoteStore
from taltrekkers.storage.user_store import UserDataStore
from taltrekkers import wordlists

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


def check_password(given: str | None, expected: str) -> None:
    """Shared-password gate for teacher actions. UI friction only, not authorization."""
    if not given or not secrets.compare_digest(given, expected):
        raise HTTPException(status_code=403, detail="Onjuist wachtwoord")


def require_teacher_password(x_teacher_password: str | None = Header(default=None)) -> None:
    check_password(x_teacher_password, get_settings().teacher_password)


def _profile_or_404(store: UserDataStore, user_name: str) -> UserProfile:
    profile = store.get(user_name)
    if profile is None:
        raise HTTPException(status_code=404, detail="Gebruiker niet gevonden")
    return profile


class AvatarRequest(CamelModel):
    avatar_id: str


class FeedbackRequest(CamelModel):
    name: str
    message: str
    email: str | None = None
    password: str | None = None


class SpeechRequest(BaseModel):
    text: str


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/word-lists")
async def list_word_lists() -> dict:
    """Available predefined lists, session lengths and avatars."""
    return {
        "lists": wordlists.list_names(),
        "session": wordlists.session_options(),
        "avatars": [a.model_dump() for a in wordlists.avatars()],
    }


@router.get("/courses")
async def list_courses(finaliteit: str | None = None, jaargang: str | None = None) -> dict:
    """Curriculum-track courses, optionally filtered by finaliteit and jaargang."""
    catalogue = wordlists.course_catalogue()
    return {
        "finaliteiten": catalogue.get("finaliteiten", {}),
        "jaargangen": catalogue.get("jaargangen", {}),
        "courses": [
            c.model_dump(by_alias=True, exclude_none=True)
            for c in wordlists.courses(finaliteit, jaargang)
        ],
    }


@router.get("/users/{user_name}")
async def get_user(user_name: str, store: UserDataStore = Depends(get_store)) -> dict:
    return _profile_or_404(store, user_name).model_dump(mode="json", by_alias=True)


@router.get("/users/{user_name}/lists/{list_name}")
async def get_list_progress(
    user_name: str, list_name: str, store: UserDataStore = Depends(get_store)
) -> dict:
    """Practiced/total overview of a predefined list for one student."""
    try:
        words = wordlists.get_word_list(list_name)
    except KeyError:
        raise HTTPException(status_code=404, detail="Woordenlijst niet gevonden")
    profile = store.get(user_name)
    progress = profile.word_list_progress.get(list_name) if profile else None
    return list_progress_stats(progress, words)


@router.put("/users/{user_name}/avatar")
async def set_avatar(
    user_name: str, body: AvatarRequest, store: UserDataStore = Depends(get_store)
) -> dict:
    profile = _profile_or_404(store, user_name)
    avatar = wordlists.find_avatar(body.avatar_id)
    if avatar is None:
        raise HTTPException(status_code=404, detail="Avatar niet gevonden")
    if not avatar.is_unlocked(profile.points):
        raise HTTPException(status_code=403, detail="Nog niet genoeg XP voor deze avatar")
    store.update(lambda users: update_avatar(users, user_name, avatar.id))
    return {"avatarId": avatar.id}


@router.get("/dashboard", dependencies=[Depends(require_teacher_password)])
async def dashboard(store: UserDataStore = Depends(get_store)) -> dict:
    """All local students with their session history."""
    return {
        name: profile.model_dump(mode="json", by_alias=True)
        for name, profile in sorted(store.state.items())
    }


@router.delete(
    "/users/{user_name}/sessions/{session_date}",
    dependencies=[Depends(require_teacher_password)],
)
async def remove_session(
    user_name: str, session_date: datetime, store: UserDataStore = Depends(get_store)
) -> dict:
    before = store.state
    after = store.update(lambda users: delete_session(users, user_name, session_date))
    if after is before:
        raise HTTPException(status_code=404, detail="Sessie niet gevonden")
    logger.info("session_deleted", user=normalize_user_name(user_name), date=session_date.isoformat())
    return {"deleted": True}


@router.get(
    "/users/{user_name}/sessions/{session_date}/analysis",
    dependencies=[Depends(require_teacher_password)],
)
async def session_analysis(
    user_name: str,
    session_date: datetime,
    store: UserDataStore = Depends(get_store),
    generator: GenerationService = Depends(get_generator),
) -> dict:
    profile = _profile_or_404(store, user_name)
    session = next((s for s in profile.session_history if s.date == session_date), None)
    if session is None:
        raise HTTPException(status_code=404, detail="Sessie niet gevonden")
    text = await generator.generate_didactic_analysis(session, user_name)
    return {
        "analysis": text,
        "sections": [s.model_dump() for s in parse_feedback_sections(text)],
    }


@router.post("/feedback")
async def submit_feedback(
    body: FeedbackRequest,
    x_user_id: str | None = Header(default=None),
    remote: RemoteStore = Depends(get_remote),
) -> dict:
    """App feedback. Anonymous senders need the feedback password."""
    if not x_user_id:
        check_password(body.password, get_settings().feedback_password)
    email = body.email or f"{body.name.strip()}@feedback.local"
    saved = remote.submit_feedback(x_user_id, email, body.name.strip(), body.message)
    if not saved:
        raise HTTPException(status_code=503, detail="Feedback kon niet worden opgeslagen")
    return {"saved": True}


@router.get("/teacher/sessions")
async def teacher_sessions(
    x_user_id: str | None = Header(default=None),
    remote: RemoteStore = Depends(get_remote),
) -> list[dict]:
    """Remote session rows of all students, for accounts with the teacher role."""
    if not x_user_id or remote.get_role(x_user_id) != "teacher":
        raise HTTPException(status_code=403, detail="Geen toegang: je bent geen leerkracht.")
    return remote.list_sessions()


@router.post("/speech")
async def speak(
    body: SpeechRequest, generator: GenerationService = Depends(get_generator)
) -> Response:
    if not body.text.strip():
        raise HTTPException(status_code=400, detail="Geen tekst opgegeven")
    audio = await generator.synthesize_speech(body.text)
    return Response(content=audio, media_type="audio/wav")
