from __future__ import annotations


class ServiceError(Exception):
    pass


class GeminiConfigurationError(ServiceError):
    pass


class ProviderError(ServiceError):
    def __init__(self, message: str, credential_index: int | None = None, attempts: int = 1):
        super().__init__(message)
        self.credential_index = credential_index
        self.attempts = attempts


class RotatableProviderError(ProviderError):
    pass


class NonRotatableProviderError(ProviderError):
    pass


class MediaValidationError(ServiceError):
    pass


class MediaDownloadError(ServiceError):
    pass


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


class ResponseParseError(ServiceError):
    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text[:500]


class ExtractionTimeoutError(ServiceError):
    def __init__(self, timeout_seconds: float):
        super().__init__(f"Model call timed out after {timeout_seconds}s")
        self.timeout_seconds = timeout_seconds
