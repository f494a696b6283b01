"""Tests for user-facing error categorisation."""

import pytest

from taltrekkers.errors import (
    ERROR_MESSAGES,
    ErrorCategory,
    GenerationError,
    categorize_error,
    create_app_error,
)


class TestCategorizeError:
    @pytest.mark.parametrize(
        "message, expected",
        [
            ("Failed to fetch", ErrorCategory.NETWORK),
            ("Connection reset by peer", ErrorCategory.NETWORK),
            ("429 Too Many Requests", ErrorCategory.API_LIMIT),
            ("You exceeded your current quota", ErrorCategory.API_LIMIT),
            ("Unexpected token < in JSON at position 0", ErrorCategory.PARSE_ERROR),
            ("Kon het bestand niet lezen", ErrorCategory.FILE_ERROR),
            ("Error 503 from upstream", ErrorCategory.API_ERROR),
            ("something odd happened", ErrorCategory.UNKNOWN),
        ],
    )
    def test_keyword_categories(self, message, expected):
        assert categorize_error(message).category is expected

    def test_first_match_wins(self):
        # Both network and parse keywords; network is checked first.
        error = categorize_error("network error while parsing json")
        assert error.category is ErrorCategory.NETWORK

    def test_exception_and_context_in_details(self):
        error = categorize_error(GenerationError("Kon de quiz niet genereren"), "practice_setup")
        assert error.category is ErrorCategory.API_ERROR
        assert error.technical_details == "practice_setup: Kon de quiz niet genereren"
        assert error.message == ERROR_MESSAGES[ErrorCategory.API_ERROR]["message"]

    def test_file_errors_not_retryable(self):
        assert not categorize_error("bestand beschadigd").can_retry
        assert categorize_error("Failed to fetch").can_retry


class TestCreateAppError:
    def test_uses_dutch_texts(self):
        error = create_app_error(ErrorCategory.NETWORK, "offline")
        assert error.message == "Geen internetverbinding"
        assert error.technical_details == "offline"
        assert error.can_retry
