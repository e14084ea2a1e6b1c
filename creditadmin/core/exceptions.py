from typing import Any

from pymongo.errors import AutoReconnect, NetworkTimeout

TRANSIENT_NETWORK_MARKERS = ("fetch failed",)


class AppError(Exception):
    """Base application error; every subclass terminates the command with `exit_code`."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        exit_code: int = 1,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.exit_code = exit_code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(AppError):
    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message, code="CONFIGURATION_ERROR")


class ConfigurationDisabledError(AppError):
    def __init__(self, message: str = "Balance is not enabled. Set balance.enabled in the config file to enable it"):
        super().__init__(message, code="BALANCE_DISABLED")


class InvalidInputError(AppError):
    def __init__(self, message: str = "Invalid input", details: dict[str, Any] | None = None):
        super().__init__(message, code="INVALID_INPUT", details=details)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class StoreWriteFailureError(AppError):
    """Upsert failed: either the store raised (cause=raised) or returned a record without credits (cause=missing_credits)."""

    RAISED = "raised"
    MISSING_CREDITS = "missing_credits"

    def __init__(self, message: str = "Store write failed", cause: str = RAISED, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            code="STORE_WRITE_FAILURE",
            details={"cause": cause, **(details or {})},
        )

    @property
    def cause(self) -> str:
        return self.details["cause"]


def is_transient_network_error(exc: BaseException | None) -> bool:
    """True for background network noise that should be logged and otherwise ignored."""
    if exc is None:
        return False
    if isinstance(exc, (AutoReconnect, NetworkTimeout)):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in TRANSIENT_NETWORK_MARKERS)
