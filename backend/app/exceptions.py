"""
Error taxonomy for the capability gateway.

Exception Hierarchy:
    GatewayError (base)
    ├── ConfigurationError            not retryable
    │   ├── CatalogError
    │   ├── UnknownProviderError
    │   ├── InvalidModelError
    │   │   └── UnsupportedModelError
    │   └── CapabilityMismatchError
    ├── NoProviderAvailableError      retryable (next explicit candidate)
    │   └── AllProvidersFailedError
    └── OperationFailedError          retryable (vendor call failed)

Only retryable errors drive automatic retry or fallback. Configuration
errors always surface to the immediate caller.

Usage:
    from backend.app.exceptions import OperationFailedError

    raise OperationFailedError("claude", "claude-3-5-haiku", "generate_text") from exc
"""

from typing import Any, Iterable, Optional


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message: Human-readable error message
        details: Additional error context (optional)
        retryable: Whether retry/fallback logic may move past this error
    """

    retryable: bool = False
    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for API responses."""
        result: dict[str, Any] = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(GatewayError):
    """A catalog or adapter configuration problem. Never retried."""

    status_code = 400


class CatalogError(ConfigurationError):
    """The catalog data could not be loaded or validated."""


class UnknownProviderError(ConfigurationError):
    """Requested provider is absent from the catalog or has no adapter."""

    status_code = 404

    def __init__(self, provider: str, reason: str = "not configured") -> None:
        self.provider = provider
        super().__init__(
            f"Provider '{provider}' {reason}",
            details={"provider": provider},
        )


class InvalidModelError(ConfigurationError):
    """Model id is not in the provider's catalog entry."""

    def __init__(
        self,
        provider: str,
        model: Optional[str],
        available: Iterable[str] = (),
        reason: str = "",
    ) -> None:
        self.provider = provider
        self.model = model
        self.available = list(available)
        message = f"Model '{model}' is not supported by {provider}"
        if reason:
            message = f"{message} ({reason})"
        if self.available:
            message = f"{message}. Available models: {', '.join(self.available)}"
        super().__init__(
            message,
            details={"provider": provider, "model": model, "available": self.available},
        )


class UnsupportedModelError(InvalidModelError):
    """A runtime model switch asked for a model the provider does not offer."""


class CapabilityMismatchError(ConfigurationError):
    """Provider was resolved but does not implement the required capability."""

    def __init__(self, provider: str, capability: str) -> None:
        self.provider = provider
        self.capability = str(getattr(capability, "value", capability))
        super().__init__(
            f"Provider '{provider}' does not support {self.capability} generation",
            details={"provider": provider, "capability": self.capability},
        )


# ---------------------------------------------------------------------------
# Runtime errors
# ---------------------------------------------------------------------------

class NoProviderAvailableError(GatewayError):
    """Every candidate for a capability was unavailable or failed."""

    retryable = True
    status_code = 503

    def __init__(self, capability: Optional[str], message: Optional[str] = None) -> None:
        self.capability = str(getattr(capability, "value", capability)) if capability else None
        super().__init__(
            message or f"No available provider found for capability: {self.capability}",
            details={"capability": self.capability} if self.capability else None,
        )


class AllProvidersFailedError(NoProviderAvailableError):
    """An explicit candidate list was exhausted.

    ``errors`` keeps every (candidate, error) pair in attempt order; the
    last one is also chained as ``__cause__``.
    """

    def __init__(self, errors: list[tuple[str, Exception]], capability: Optional[str] = None) -> None:
        self.errors = list(errors)
        last_candidate, last_error = self.errors[-1]
        super().__init__(
            capability,
            message=(
                f"All {len(self.errors)} candidates failed; "
                f"last was {last_candidate}: {last_error}"
            ),
        )
        self.details["candidates"] = [candidate for candidate, _ in self.errors]

    @property
    def last_error(self) -> Exception:
        return self.errors[-1][1]


class OperationFailedError(GatewayError):
    """The vendor call behind a provider operation raised."""

    retryable = True
    status_code = 502

    def __init__(
        self,
        provider: str,
        model: Optional[str],
        operation: str,
        reason: str = "",
    ) -> None:
        self.provider = provider
        self.model = model
        self.operation = operation
        message = f"{provider} {operation} failed"
        if model:
            message = f"{provider} {operation} failed (model {model})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            details={"provider": provider, "model": model, "operation": operation},
        )
