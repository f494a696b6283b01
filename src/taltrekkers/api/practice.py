"""Practice flow endpoints: word selection, custom lists, sessions, quiz and story."""

import uuid

import structlog
from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    UploadFile,
)
from pydantic import BaseModel

from taltrekkers.ai.service import GenerationService, parse_feedback_sections
from taltrekkers.api.deps import get_generator, get_remote, get_store
from taltrekkers.config import get_settings
from taltrekkers.extraction.documents import extract_text
from taltrekkers.extraction.terms import extract_terms_from_text, select_practice_words
from taltrekkers.models.profile import CamelModel, PracticeSettings, StudyMode
from taltrekkers.practice.session import PracticeSession, SessionPhase
from taltrekkers.practice.story import pick_story_words
from taltrekkers.progress.merge import apply_session, local_list_id
from taltrekkers.remote.supabase_store import RemoteStore
from taltrekkers.storage.user_store import UserDataStore
from taltrekkers import wordlists

logger = structlog.get_logger()
router = APIRouter(prefix="/api")

# Active sessions by id (in-memory, single process); idle ones are evicted on create
_sessions: dict[str, PracticeSession] = {}


class SelectWordsRequest(CamelModel):
    user_name: str
    list_name: str
    length: int | None = None


class CustomTextRequest(CamelModel):
    text: str
    settings: PracticeSettings = PracticeSettings()


class CustomSelectRequest(CamelModel):
    user_name: str
    terms: list[str]
    list_id: str
    length: int | None = None


class CreateSessionRequest(CamelModel):
    user_name: str
    words: list[str]
    settings: PracticeSettings
    course_id: str | None = None


class StudyModeRequest(BaseModel):
    mode: StudyMode


class AnswerRequest(CamelModel):
    option_index: int | None = None
    text: str | None = None


class StoryRequest(CamelModel):
    user_name: str
    settings: PracticeSettings = PracticeSettings()


class EvaluateRequest(CamelModel):
    story: str
    summary: str | None = None
    question: str | None = None
    answer: str | None = None
    settings: PracticeSettings = PracticeSettings()


def _session_length(length: int | None) -> int:
    options = wordlists.session_options()
    if length is None:
        return options.get("default_words", 20)
    low, high = options.get("min_words", 20), options.get("max_words", 40)
    if not low <= length <= high:
        raise HTTPException(
            status_code=400, detail=f"Sessielengte moet tussen {low} en {high} liggen"
        )
    return length


def _get_session(session_id: str) -> PracticeSession:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Sessie niet gevonden")
    session.touch()
    return session


def _evict_idle_sessions(ttl_seconds: float) -> None:
    idle = [sid for sid, s in _sessions.items() if s.is_idle(ttl_seconds)]
    for session_id in idle:
        del _sessions[session_id]
    if idle:
        logger.info("practice_sessions_evicted", count=len(idle), remaining=len(_sessions))


def _practiced_words(store: UserDataStore, user_name: str, list_id: str) -> list[str]:
    profile = store.get(user_name)
    if profile is None or list_id not in profile.word_list_progress:
        return []
    return profile.word_list_progress[list_id].practiced_words


def session_state(session: PracticeSession) -> dict:
    """Client-facing snapshot of a session."""
    state: dict = {
        "sessionId": session.session_id,
        "phase": str(session.phase),
        "words": session.words,
        "error": session.error.model_dump(mode="json", by_alias=True) if session.error else None,
        "studyMode": str(session.study_mode) if session.study_mode else None,
        "currentWord": session.current_word,
        "allWordsViewed": session.all_words_viewed,
        "settings": session.settings.model_dump(by_alias=True, exclude_none=True),
    }
    if session.phase is not SessionPhase.LOADING and session.models:
        state["frayerModels"] = [m.model_dump(by_alias=True) for m in session.models]
    quiz = session.quiz
    if quiz is not None and not quiz.completed:
        question = quiz.current
        state["quiz"] = {
            "index": quiz.index,
            "total": len(quiz.questions),
            "question": question.model_dump(by_alias=True, exclude={"correct_index", "word"}),
            "isAnswered": quiz.is_answered,
            "eliminated": quiz.eliminated,
            "hintsRemaining": quiz.hints_remaining,
            "wordBank": quiz.word_bank,
            "score": quiz.score,
        }
    return state


@router.post("/practice/select")
async def select_from_list(
    body: SelectWordsRequest, store: UserDataStore = Depends(get_store)
) -> dict:
    """Pick a practice subset from a predefined list, favouring unpracticed words."""
    try:
        words = wordlists.get_word_list(body.list_name)
    except KeyError:
        raise HTTPException(status_code=404, detail="Woordenlijst niet gevonden")
    length = _session_length(body.length)
    practiced = _practiced_words(store, body.user_name, body.list_name)
    return {
        "words": select_practice_words(words, practiced, length),
        "difficulty": wordlists.difficulty_for(body.list_name),
    }


@router.post("/custom/extract")
async def extract_from_file(
    file: UploadFile = File(...),
    context: str | None = Form(default=None),
    generator: GenerationService = Depends(get_generator),
) -> dict:
    """Read an uploaded PDF/DOCX/XLSX and return its key terms."""
    data = await file.read()
    text = extract_text(
        data, file.content_type, file.filename, max_pdf_pages=get_settings().max_pdf_pages
    )
    practice = PracticeSettings(context=context, custom_file_name=file.filename)
    terms = await extract_terms_from_text(text, generator, practice)
    return {"fileName": file.filename, "terms": terms}


@router.post("/custom/analyze")
async def analyze_text(
    body: CustomTextRequest, generator: GenerationService = Depends(get_generator)
) -> dict:
    terms = await extract_terms_from_text(body.text, generator, body.settings)
    return {"terms": terms}


@router.post("/custom/select")
async def select_from_terms(
    body: CustomSelectRequest, store: UserDataStore = Depends(get_store)
) -> dict:
    length = _session_length(body.length)
    practiced = _practiced_words(store, body.user_name, body.list_id)
    return {"words": select_practice_words(body.terms, practiced, length)}


@router.post("/sessions")
async def create_session(
    body: CreateSessionRequest, generator: GenerationService = Depends(get_generator)
) -> dict:
    """Start a practice session and fetch its study material and quiz."""
    if not body.user_name.strip():
        raise HTTPException(status_code=400, detail="Vul je naam in")
    if not body.words:
        raise HTTPException(status_code=400, detail="Geen woorden geselecteerd")
    _evict_idle_sessions(get_settings().session_ttl_seconds)
    settings = body.settings
    course_id = body.course_id or settings.course_id
    if course_id:
        course = wordlists.find_course(course_id)
        if course is None:
            raise HTTPException(status_code=404, detail="Cursus niet gevonden")
        settings = course.apply_to(settings)
    session_id = uuid.uuid4().hex
    session = PracticeSession(
        session_id,
        body.user_name,
        body.words,
        settings,
        generator,
        predefined=wordlists.predefined_models(),
    )
    _sessions[session_id] = session
    logger.info("practice_session_created", session_id=session_id, words=len(body.words))
    await session.prepare()
    return session_state(session)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str) -> dict:
    return session_state(_get_session(session_id))


@router.post("/sessions/{session_id}/retry")
async def retry_session(session_id: str) -> dict:
    session = _get_session(session_id)
    await session.retry()
    return session_state(session)


@router.post("/sessions/{session_id}/study-mode")
async def choose_study_mode(session_id: str, body: StudyModeRequest) -> dict:
    session = _get_session(session_id)
    session.choose_study_mode(body.mode)
    return session_state(session)


@router.post("/sessions/{session_id}/view/{index}")
async def view_word(session_id: str, index: int, seconds: float | None = None) -> dict:
    session = _get_session(session_id)
    session.view_word(index, seconds)
    return session_state(session)


@router.get("/sessions/{session_id}/translate/{index}")
async def translate_word(session_id: str, index: int) -> dict:
    session = _get_session(session_id)
    if not 0 <= index < len(session.models):
        raise HTTPException(status_code=404, detail="Woord niet gevonden")
    model = await session.translate_model(index)
    return model.model_dump(by_alias=True)


@router.post("/sessions/{session_id}/quiz")
async def start_quiz(session_id: str) -> dict:
    session = _get_session(session_id)
    session.finish_study()
    return session_state(session)


@router.post("/sessions/{session_id}/answer")
async def answer_question(session_id: str, body: AnswerRequest) -> dict:
    session = _get_session(session_id)
    if session.phase is not SessionPhase.QUIZ:
        raise HTTPException(status_code=409, detail="Er loopt geen quiz")
    if body.option_index is not None:
        outcome = await session.quiz.answer_choice(body.option_index)
    elif body.text is not None:
        outcome = await session.quiz.answer_text(body.text)
    else:
        raise HTTPException(status_code=400, detail="Geen antwoord opgegeven")
    return {
        "correct": outcome.correct,
        "correctAnswer": outcome.correct_answer,
        "feedback": outcome.feedback,
    }


@router.post("/sessions/{session_id}/hints/fifty-fifty")
async def fifty_fifty(session_id: str) -> dict:
    session = _get_session(session_id)
    if session.phase is not SessionPhase.QUIZ:
        raise HTTPException(status_code=409, detail="Er loopt geen quiz")
    eliminated = session.quiz.use_fifty_fifty()
    return {"eliminated": eliminated, "hintsRemaining": session.quiz.hints_remaining}


@router.post("/sessions/{session_id}/hints/simplify")
async def simplify(session_id: str) -> dict:
    session = _get_session(session_id)
    if session.phase is not SessionPhase.QUIZ:
        raise HTTPException(status_code=409, detail="Er loopt geen quiz")
    text = await session.quiz.simplify()
    return {"simplified": text, "hintsRemaining": session.quiz.hints_remaining}


@router.post("/sessions/{session_id}/next")
async def next_question(
    session_id: str,
    background_tasks: BackgroundTasks,
    x_user_id: str | None = Header(default=None),
    store: UserDataStore = Depends(get_store),
    remote: RemoteStore = Depends(get_remote),
) -> dict:
    """Move to the next question; on the last one, merge the result into the profile."""
    session = _get_session(session_id)
    if session.phase is not SessionPhase.COMPLETE and not session.next_question():
        return session_state(session)

    outcome = session.outcome()
    store.update(lambda all_users: apply_session(all_users, session.user_name, outcome))
    if x_user_id:
        background_tasks.add_task(
            remote.sync_finished_session,
            x_user_id,
            session.settings,
            outcome.score,
            outcome.quiz_results,
            outcome.practice_words,
            outcome.timing_data.total_seconds,
        )
    _sessions.pop(session_id, None)
    profile = store.get(session.user_name)
    return {
        "sessionId": session_id,
        "phase": str(SessionPhase.COMPLETE),
        "score": outcome.score,
        "total": len(outcome.quiz_results),
        "earnedXP": outcome.score,
        "listId": local_list_id(session.settings),
        "quizResults": [r.model_dump(by_alias=True) for r in outcome.quiz_results],
        "timingData": outcome.timing_data.model_dump(by_alias=True),
        "profile": profile.model_dump(mode="json", by_alias=True) if profile else None,
    }


@router.post("/story")
async def create_story(
    body: StoryRequest,
    store: UserDataStore = Depends(get_store),
    generator: GenerationService = Depends(get_generator),
) -> dict:
    """Story challenge built from learned words; unlocked at the XP threshold."""
    profile = store.get(body.user_name)
    threshold = wordlists.session_options().get("story_unlock_threshold", 1000)
    if profile is None or len(profile.learned_words) < threshold:
        raise HTTPException(
            status_code=403,
            detail=f"De verhaaluitdaging opent vanaf {threshold} geleerde woorden.",
        )
    words = pick_story_words(profile)
    theme = await generator.generate_funny_theme(words, body.settings)
    story = await generator.generate_story(words, theme, body.settings)
    return {"theme": theme, "words": words, **story.model_dump()}


@router.post("/story/evaluate")
async def evaluate_story(
    body: EvaluateRequest, generator: GenerationService = Depends(get_generator)
) -> dict:
    """Evaluate a summary of the story, or an answer to a reading question."""
    if body.summary is not None:
        text = await generator.evaluate_comprehension(body.story, body.summary, body.settings)
    elif body.question is not None and body.answer is not None:
        text = await generator.evaluate_reading_answer(
            body.story, body.question, body.answer, body.settings
        )
    else:
        raise HTTPException(status_code=400, detail="Geef een samenvatting of een antwoord")
    return {
        "feedback": text,
        "sections": [s.model_dump() for s in parse_feedback_sections(text)],
    }
