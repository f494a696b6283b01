"""Remote persistence facade over Supabase.

Rows are keyed by the authenticated user id, not by the local display name, and no
call here is transactional. Write failures are logged and never raised: the local
profile stays authoritative for the student.
"""

from datetime import datetime

import structlog
from supabase import Client, create_client

from taltrekkers.models.profile import PracticeSettings, QuizResult

logger = structlog.get_logger()

REMOTE_FALLBACK_CONTEXT = "custom"


def remote_list_id(settings: PracticeSettings) -> str:
    """Remote list key. Differs from the local key by also considering ``course_id``."""
    return (
        settings.custom_file_name
        or settings.course_id
        or settings.context
        or REMOTE_FALLBACK_CONTEXT
    )


class RemoteStore:
    """CRUD-style calls for sessions, word progress and feedback.

    Args:
        url: Supabase project URL. ``None`` disables the store.
        key: Supabase anon/publishable key.
        client: Preconfigured client (tests inject a mock here).
    """

    def __init__(
        self,
        url: str | None = None,
        key: str | None = None,
        client: Client | None = None,
    ):
        if client is None and url and key:
            client = create_client(url, key)
        self.client = client
        if self.client is None:
            logger.warning("supabase_disabled")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def save_session(
        self,
        user_id: str,
        context: str,
        file_name: str | None,
        score: int,
        quiz_results: list[QuizResult],
        duration_seconds: float,
    ) -> None:
        if not self.enabled or not user_id:
            return
        try:
            self.client.table("practice_sessions").insert({
                "user_id": user_id,
                "context": context,
                "file_name": file_name,
                "score": score,
                "total_questions": len(quiz_results),
                "duration_seconds": int(duration_seconds),
            }).execute()
            logger.info("remote_session_saved", user_id=user_id, context=context)
        except Exception:
            logger.exception("remote_session_save_failed", user_id=user_id)

    def update_word_progress(self, user_id: str, list_id: str, words: list[str]) -> None:
        """Increment ``practiced_count`` per word, inserting rows that do not exist yet.

        Read-then-write per word; concurrent sessions can race (last write wins).
        """
        if not self.enabled or not user_id:
            return
        table = self.client.table("word_progress")
        for word in words:
            now = datetime.now().isoformat()
            try:
                existing = (
                    table.select("id, practiced_count")
                    .eq("user_id", user_id)
                    .eq("word", word)
                    .eq("list_id", list_id)
                    .limit(1)
                    .execute()
                )
                if existing.data:
                    row = existing.data[0]
                    table.update({
                        "practiced_count": (row.get("practiced_count") or 1) + 1,
                        "last_practiced_at": now,
                    }).eq("id", row["id"]).execute()
                else:
                    table.insert({
                        "user_id": user_id,
                        "word": word,
                        "list_id": list_id,
                        "practiced_count": 1,
                        "last_practiced_at": now,
                    }).execute()
            except Exception:
                logger.exception("remote_word_progress_failed", user_id=user_id, word=word)

    def sync_finished_session(
        self,
        user_id: str,
        settings: PracticeSettings,
        score: int,
        quiz_results: list[QuizResult],
        words: list[str],
        duration_seconds: float,
    ) -> None:
        """Fire-and-forget sync run after the local merge."""
        list_id = remote_list_id(settings)
        self.save_session(
            user_id, list_id, settings.custom_file_name, score, quiz_results, duration_seconds
        )
        self.update_word_progress(user_id, list_id, words)

    def submit_feedback(self, user_id: str | None, email: str, name: str, message: str) -> bool:
        if not self.enabled:
            return False
        try:
            self.client.table("feedback").insert({
                "user_id": user_id,
                "email": email,
                "name": name,
                "message": message,
            }).execute()
        except Exception:
            logger.exception("remote_feedback_failed", email=email)
            return False
        logger.info("remote_feedback_saved", email=email)
        return True

    def list_sessions(self) -> list[dict]:
        """All practice sessions with the student's email and name, newest first."""
        if not self.enabled:
            return []
        response = (
            self.client.table("practice_sessions")
            .select(
                "id, score, total_questions, duration_seconds, completed_at, context, "
                "file_name, profiles (email, full_name)"
            )
            .order("completed_at", desc=True)
            .execute()
        )
        return response.data or []

    def get_role(self, user_id: str) -> str:
        if not self.enabled:
            return "student"
        try:
            response = (
                self.client.table("profiles")
                .select("role")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception:
            logger.exception("remote_role_lookup_failed", user_id=user_id)
            return "student"
        if response.data:
            return response.data[0].get("role") or "student"
        return "student"
