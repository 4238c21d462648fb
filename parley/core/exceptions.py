"""Custom exceptions for the Parley dispatch engine.

All exceptions inherit from ParleyError, so callers can catch everything the
engine raises in one place while still distinguishing the failure modes that
matter for routing decisions.

Exception Hierarchy:
    ParleyError (base)
    ├── ConfigurationError: Invalid configuration or settings
    ├── BackendError: A text-generation backend call failed
    │   ├── BackendTimeoutError: The call exceeded its own timeout
    │   └── EmptyResponseError: The backend answered with no usable text
    ├── RouterExhaustedError: Every backend in a fallback chain failed
    └── MemoryStoreError: The long-term memory store failed

The ``retryable`` flag on BackendError is the only signal the retry executor
and the router use to decide whether to keep going.
"""

from __future__ import annotations

from typing import Any, Optional


class ParleyError(Exception):
    """Base exception for all Parley errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        context: Additional context information about the error
        recoverable: Whether the error is potentially recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "PARLEY_ERROR"
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_log_dict(self) -> dict[str, Any]:
        """Return structured dict for logging.

        Returns:
            Dictionary with error details suitable for structured logging
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ConfigurationError(ParleyError):
    """Raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that caused the error
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if config_key:
            context["config_key"] = config_key
        super().__init__(message, code="CONFIG_ERROR", context=context, **kwargs)
        self.config_key = config_key


# =============================================================================
# Backend Errors
# =============================================================================


class BackendError(ParleyError):
    """Uniform error for any text-generation backend failure.

    Every backend client translates its native failures (HTTP status codes,
    SDK exceptions, transport errors) into this type.

    Attributes:
        backend: Identity of the backend that failed (e.g. "ollama")
        status_code: HTTP status code, when the failure carried one
        retryable: True for timeouts, 408/429/5xx and network failures
        cause: The original exception, if any
    """

    def __init__(
        self,
        message: str,
        backend: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
        cause: Optional[BaseException] = None,
        code: str = "BACKEND_ERROR",
    ) -> None:
        context: dict[str, Any] = {"backend": backend}
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, code=code, context=context, recoverable=retryable)
        self.backend = backend
        self.status_code = status_code
        self.retryable = retryable
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message


class BackendTimeoutError(BackendError):
    """Raised when a backend call exceeds the client-enforced timeout."""

    def __init__(
        self,
        backend: str,
        timeout_seconds: float,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            f"Request timed out after {timeout_seconds:g}s",
            backend=backend,
            retryable=True,
            cause=cause,
            code="BACKEND_TIMEOUT",
        )
        self.timeout_seconds = timeout_seconds
        self.context["timeout_seconds"] = timeout_seconds


class EmptyResponseError(BackendError):
    """Raised when a backend answers with empty or whitespace-only text."""

    def __init__(self, backend: str) -> None:
        super().__init__(
            f"{backend} returned an empty text response",
            backend=backend,
            retryable=False,
            code="BACKEND_EMPTY_RESPONSE",
        )


# =============================================================================
# Routing Errors
# =============================================================================


class RouterExhaustedError(ParleyError):
    """Raised when every backend in a fallback chain was skipped or failed.

    This is the one hard failure mode of the engine and must reach the caller.

    Attributes:
        tier: The complexity tier whose chain was exhausted
        errors: One "{backend}: {message}" entry per skipped or failed backend
    """

    def __init__(self, tier: str, errors: list[str]) -> None:
        detail = " | ".join(errors) if errors else "empty fallback chain"
        super().__init__(
            f'All backends failed for tier "{tier}": {detail}',
            code="ROUTER_EXHAUSTED",
            context={"tier": tier, "errors": list(errors)},
        )
        self.tier = tier
        self.errors = list(errors)


# =============================================================================
# Memory Errors
# =============================================================================


class MemoryStoreError(ParleyError):
    """Raised when the long-term memory store cannot complete an operation.

    Attributes:
        operation: The store operation that failed (save, search, ...)
    """

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if operation:
            context["operation"] = operation
        super().__init__(message, code="MEMORY_STORE_ERROR", context=context, **kwargs)
        self.operation = operation


__all__ = [
    "ParleyError",
    "ConfigurationError",
    "BackendError",
    "BackendTimeoutError",
    "EmptyResponseError",
    "RouterExhaustedError",
    "MemoryStoreError",
]
