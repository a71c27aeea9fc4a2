"""Full error hierarchy for the surfacesync engine.

Every public error class inherits from SurfaceSyncError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Only integration misuse and explicit validation requests raise.  Faults
caused by individual overrides (unmatched selectors, a render target
rejecting one write) are logged and reported as :class:`ApplyWarning`
entries instead, so a single bad patch never aborts a whole surface.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the engine can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SELECTOR = "INVALID_SELECTOR"
    SELECTOR_NOT_FOUND = "SELECTOR_NOT_FOUND"
    RENDER_FAILED = "RENDER_FAILED"
    UNKNOWN_SURFACE = "UNKNOWN_SURFACE"
    SYNC_DRIFT = "SYNC_DRIFT"
    STALE_STATUS = "STALE_STATUS"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class SurfaceSyncError(Exception):
    """Base exception for all surfacesync errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __reduce__(self) -> tuple[Any, ...]:
        return (_rebuild_error, (type(self), self.code, self.message, self.context, self.cause))

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


def _rebuild_error(
    cls: type[SurfaceSyncError],
    code: str,
    message: str,
    context: dict[str, Any],
    cause: Exception | None,
) -> SurfaceSyncError:
    """Unpickling helper; subclasses have narrower ``__init__`` signatures."""
    err = cls.__new__(cls)
    SurfaceSyncError.__init__(err, code, message, context, cause)
    return err


# ---------------------------------------------------------------------------
# Data errors
# ---------------------------------------------------------------------------

class SurfaceSyncValidationError(SurfaceSyncError):
    """An override record or argument is structurally invalid.

    Context keys: ``field``, ``value``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class SurfaceSyncSelectorError(SurfaceSyncError):
    """A selector uses syntax outside the supported subset.

    Context keys: ``selector``, ``position``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SELECTOR,
            message=message,
            context=context,
            cause=cause,
        )


class SurfaceSyncSelectorNotFoundError(SurfaceSyncError):
    """A selector matched no node in the target content.

    The diff engine never raises this during a batch; it is provided for
    hosts that want to escalate an :class:`ApplyWarning` themselves.

    Context keys: ``selector``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.SELECTOR_NOT_FOUND,
            message=message,
            context=context,
            cause=cause,
        )


class SurfaceSyncRenderError(SurfaceSyncError):
    """A render target rejected a primitive write (text, attribute, style,
    content replacement).

    Context keys: ``operation``, ``selector``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.RENDER_FAILED,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Sync state errors
# ---------------------------------------------------------------------------

class SurfaceSyncStateError(SurfaceSyncError):
    """An operation referenced a surface id that was never initialised and
    the configured policy is ``unknown_surface="raise"``.

    Context keys: ``surface_id``, ``operation``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UNKNOWN_SURFACE,
            message=message,
            context=context,
            cause=cause,
        )


class SurfaceSyncDriftError(SurfaceSyncError):
    """The bound root's geometry no longer matches the last synced shape.

    Raised only by ``SyncEngine.validate_sync(..., strict=True)``; the
    engine never corrects drift on its own.

    Context keys: ``surface_id``, ``axis``, ``expected``, ``actual``,
    ``tolerance``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.SYNC_DRIFT,
            message=message,
            context=context,
            cause=cause,
        )


class SurfaceSyncStaleStatusError(SurfaceSyncError):
    """The surface is in ``error`` status and has not been recovered.

    Context keys: ``surface_id``, ``last_error``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.STALE_STATUS,
            message=message,
            context=context,
            cause=cause,
        )
