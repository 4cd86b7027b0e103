import pytest

from place_import.core.exceptions import (
    AuthenticationError,
    InvalidInputError,
    PlaceImportException,
    PlaceNotFoundError,
    ProviderError,
    RateLimitExceededError,
    UnconfiguredError,
)


class TestErrorShape:
    """Test the error contract shared by every failure."""

    @pytest.mark.parametrize("error_class, status_code, code", [
        (InvalidInputError, 400, "INVALID_INPUT"),
        (AuthenticationError, 401, "UNAUTHORIZED"),
        (PlaceNotFoundError, 404, "PLACE_NOT_FOUND"),
        (RateLimitExceededError, 429, "RATE_LIMITED"),
        (UnconfiguredError, 500, "UNCONFIGURED"),
        (ProviderError, 502, "PROVIDER_ERROR"),
    ])
    def test_codes(self, error_class, status_code, code):
        error = error_class()
        data = error.to_dict()

        assert isinstance(error, PlaceImportException)
        assert error.status_code == status_code
        assert data["code"] == code
        assert data["status"] == status_code
        assert data["message"] == data["detail"]
        assert data["message"]

    def test_detail_override(self):
        error = ProviderError(detail="Try again later.")
        assert error.message == "Try again later."
        assert str(error) == "Try again later."

    def test_extra_fields(self):
        data = RateLimitExceededError(limit=10, timeframe=60).to_dict()
        assert data["limit"] == 10
        assert data["timeframe"] == 60

    def test_problem_content_type(self):
        assert InvalidInputError().headers["Content-Type"] == "application/problem+json"

    def test_headers_not_shared_between_instances(self):
        first = AuthenticationError()
        first.headers["X-Test"] = "1"
        assert "X-Test" not in AuthenticationError().headers


class TestPlaceNotFound:
    """Test input-specific guidance."""

    def test_for_url(self):
        error = PlaceNotFoundError.for_query(from_url=True)
        assert error.message == PlaceNotFoundError.URL_MESSAGE
        assert error.to_dict()["source"] == "url"

    def test_for_text(self):
        error = PlaceNotFoundError.for_query(from_url=False)
        assert error.message == PlaceNotFoundError.TEXT_MESSAGE
        assert error.to_dict()["source"] == "text"
