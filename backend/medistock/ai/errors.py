from __future__ import annotations


class ProviderError(RuntimeError):
    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code

    def __str__(self) -> str:
        prefix = self.provider or "provider"
        if self.status_code is not None:
            return f"{prefix} error ({self.status_code}): {self.message}"
        return f"{prefix} error: {self.message}"


class TransientProviderError(ProviderError):
    """Network failure, 5xx, unexpected status or malformed payload."""


class RateLimitExceeded(ProviderError):
    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        status_code: int | None = 429,
        retry_after_s: float | None = None,
    ) -> None:
        super().__init__(message, provider=provider, status_code=status_code)
        self.retry_after_s = retry_after_s


class InvalidInput(ProviderError):
    """Malformed caller input. Never retried."""


class JobFailed(ProviderError):
    """The provider reported the asynchronous job as failed."""


class JobTimeout(ProviderError):
    """Polling hit its attempt ceiling while the job was still running."""


class AllProvidersExhausted(ProviderError):
    pass
