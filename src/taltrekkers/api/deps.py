"""Shared service instances for the API layer, overridable in tests."""

import functools

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taltrekkers.ai.service import GenerationService
from taltrekkers.config import get_settings
from taltrekkers.errors import (
    ExtractionError,
    GenerationError,
    HintUnavailable,
    InvalidTransition,
    TaltrekkersError,
    categorize_error,
)
from taltrekkers.remote.supabase_store import RemoteStore
from taltrekkers.storage.user_store import UserDataStore


@functools.lru_cache
def get_store() -> UserDataStore:
    return UserDataStore(get_settings().user_data_path)


@functools.lru_cache
def get_generator() -> GenerationService:
    return GenerationService(get_settings())


@functools.lru_cache
def get_remote() -> RemoteStore:
    settings = get_settings()
    return RemoteStore(settings.supabase_url, settings.supabase_key)


_STATUS_BY_ERROR: dict[type[TaltrekkersError], int] = {
    InvalidTransition: 409,
    HintUnavailable: 409,
    ExtractionError: 422,
    GenerationError: 502,
}


async def _app_error_handler(request: Request, exc: TaltrekkersError) -> JSONResponse:
    status = next(
        (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500
    )
    app_error = categorize_error(exc)
    return JSONResponse(
        {"detail": str(exc), "error": app_error.model_dump(mode="json", by_alias=True)},
        status_code=status,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaltrekkersError, _app_error_handler)
