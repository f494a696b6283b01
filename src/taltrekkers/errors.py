"""Exception types and user-facing error categorisation.

Categorisation is a keyword heuristic over the error message; upstream layers do not
raise structured error codes.
"""

from enum import StrEnum

from pydantic import BaseModel


class TaltrekkersError(Exception):
    """Base class for application errors."""


class GenerationError(TaltrekkersError):
    """The generation service failed after all retry attempts."""


class ExtractionError(TaltrekkersError):
    """An uploaded file could not be turned into usable text or terms."""


class InvalidTransition(TaltrekkersError):
    """A practice session action was requested in the wrong phase."""


class HintUnavailable(TaltrekkersError):
    """No hint can be spent on the current question."""


class ErrorCategory(StrEnum):
    NETWORK = "network"
    API_LIMIT = "api_limit"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    FILE_ERROR = "file_error"
    UNKNOWN = "unknown"


class AppError(BaseModel):
    category: ErrorCategory
    message: str
    suggestion: str
    technical_details: str | None = None
    can_retry: bool


ERROR_MESSAGES: dict[ErrorCategory, dict] = {
    ErrorCategory.NETWORK: {
        "message": "Geen internetverbinding",
        "suggestion": "Controleer je wifi of mobiele data en probeer het opnieuw.",
        "can_retry": True,
    },
    ErrorCategory.API_LIMIT: {
        "message": "De AI is tijdelijk overbelast",
        "suggestion": "Wacht even en probeer het over een minuutje opnieuw.",
        "can_retry": True,
    },
    ErrorCategory.API_ERROR: {
        "message": "De AI kon de opdracht niet voltooien",
        "suggestion": (
            "Dit kan gebeuren bij complexe teksten. "
            "Probeer met minder woorden of een kortere tekst."
        ),
        "can_retry": True,
    },
    ErrorCategory.PARSE_ERROR: {
        "message": "Er ging iets mis bij het verwerken van de data",
        "suggestion": "Probeer het opnieuw. Als het probleem aanhoudt, kies dan andere woorden.",
        "can_retry": True,
    },
    ErrorCategory.FILE_ERROR: {
        "message": "Kon het bestand niet lezen",
        "suggestion": (
            "Controleer of het bestand niet beschadigd is en probeer een ander "
            "bestandsformaat (.pdf, .docx, .xlsx)."
        ),
        "can_retry": False,
    },
    ErrorCategory.UNKNOWN: {
        "message": "Er is een onverwachte fout opgetreden",
        "suggestion": "Probeer het opnieuw of herlaad de pagina.",
        "can_retry": True,
    },
}

# Checked in order; the first matching category wins.
CATEGORY_KEYWORDS: list[tuple[ErrorCategory, tuple[str, ...]]] = [
    (ErrorCategory.NETWORK, ("network", "fetch", "connection", "net::err", "timed out")),
    (ErrorCategory.API_LIMIT, ("rate limit", "quota", "429", "too many requests", "overbelast")),
    (ErrorCategory.PARSE_ERROR, ("json", "parse", "unexpected token", "syntax", "validation")),
    (ErrorCategory.FILE_ERROR, ("file", "bestand", "read", "lezen")),
    (ErrorCategory.API_ERROR, ("api", "genereren", "generate", "500", "503")),
]


def categorize_error(error: BaseException | str, context: str | None = None) -> AppError:
    """Map an exception (or message) to a user-facing AppError."""
    error_message = str(error)
    error_lower = error_message.lower()

    category = ErrorCategory.UNKNOWN
    for candidate, keywords in CATEGORY_KEYWORDS:
        if any(keyword in error_lower for keyword in keywords):
            category = candidate
            break

    details = f"{context}: {error_message}" if context else error_message
    return AppError(category=category, technical_details=details, **ERROR_MESSAGES[category])


def create_app_error(category: ErrorCategory, technical_details: str | None = None) -> AppError:
    return AppError(
        category=category,
        technical_details=technical_details,
        **ERROR_MESSAGES[category],
    )
