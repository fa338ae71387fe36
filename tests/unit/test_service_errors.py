from __future__ import annotations

import pytest

from kitchen_ai.services.errors import (
    ServiceError,
    GeminiConfigurationError,
    ProviderError,
    RotatableProviderError,
    NonRotatableProviderError,
    MediaValidationError,
    MediaDownloadError,
    NetworkTimeoutError,
    ResponseParseError,
    ExtractionTimeoutError,
)


class TestServiceError:
    def test_base_exception(self) -> None:
        error = ServiceError("Base service error")
        assert str(error) == "Base service error"
        assert isinstance(error, Exception)


class TestGeminiConfigurationError:
    def test_configuration_error(self) -> None:
        error = GeminiConfigurationError("No Gemini API keys configured")
        assert "No Gemini API keys" in str(error)
        assert isinstance(error, ServiceError)


class TestProviderError:
    def test_defaults(self) -> None:
        error = ProviderError("boom")
        assert error.credential_index is None
        assert error.attempts == 1

    def test_carries_index_and_attempts(self) -> None:
        error = RotatableProviderError("429 quota", credential_index=2, attempts=3)
        assert error.credential_index == 2
        assert error.attempts == 3
        assert isinstance(error, ProviderError)

    def test_non_rotatable_is_provider_error(self) -> None:
        error = NonRotatableProviderError("400 bad request")
        assert isinstance(error, ProviderError)
        assert not isinstance(error, RotatableProviderError)


class TestNetworkTimeoutError:
    def test_timeout_with_url_and_seconds(self) -> None:
        error = NetworkTimeoutError("https://cdn.example.com/thumb.jpg", 15.0)
        assert "https://cdn.example.com/thumb.jpg" in str(error)
        assert "15" in str(error)
        assert error.url == "https://cdn.example.com/thumb.jpg"
        assert error.timeout_seconds == 15.0


class TestResponseParseError:
    def test_keeps_truncated_raw_text(self) -> None:
        error = ResponseParseError("not json", raw_text="x" * 2000)
        assert len(error.raw_text) == 500

    def test_raw_text_defaults_to_empty(self) -> None:
        assert ResponseParseError("not json").raw_text == ""


class TestExtractionTimeoutError:
    def test_includes_timeout(self) -> None:
        error = ExtractionTimeoutError(120.0)
        assert "120" in str(error)
        assert error.timeout_seconds == 120.0


class TestExceptionHierarchy:
    def test_all_errors_inherit_from_service_error(self) -> None:
        assert issubclass(GeminiConfigurationError, ServiceError)
        assert issubclass(ProviderError, ServiceError)
        assert issubclass(RotatableProviderError, ServiceError)
        assert issubclass(NonRotatableProviderError, ServiceError)
        assert issubclass(MediaValidationError, ServiceError)
        assert issubclass(MediaDownloadError, ServiceError)
        assert issubclass(NetworkTimeoutError, ServiceError)
        assert issubclass(ResponseParseError, ServiceError)
        assert issubclass(ExtractionTimeoutError, ServiceError)

    def test_can_be_caught_as_service_error(self) -> None:
        with pytest.raises(ServiceError):
            raise MediaValidationError("not an image")
