"""
Exception hierarchy for tool-relay, plus translation of noisy provider
tracebacks into a unified `ProviderError` that keeps the original exception.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final, Optional, Type

import openai
from google.genai import errors as genai_errors

if TYPE_CHECKING:
    from tool_relay.types.tool import ToolCallResult

__all__: tuple[str, ...] = (
    "ToolRelayError",
    "ToolValidationError",
    "UnknownToolError",
    "MissingParameterError",
    "TypeMismatchError",
    "NoHandlerError",
    "NonRetryableError",
    "RetriesExhaustedError",
    "ToolBatchError",
    "ToolRoundLimitExceeded",
    "NoPendingCallError",
    "ToolArgumentsError",
    "ProviderError",
    "classify_error",
)


class ToolRelayError(Exception):
    """Base class for every error raised by the orchestration engine."""


# --- validation --------------------------------------------------------------


class ToolValidationError(ToolRelayError):
    """Tool call arguments do not fit the declared tool."""

    def __init__(self, message: str, tool_name: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class UnknownToolError(ToolValidationError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"unknown tool: {tool_name}", tool_name)


class MissingParameterError(ToolValidationError):
    def __init__(self, tool_name: str, parameter: str) -> None:
        super().__init__(
            f"tool {tool_name!r}: missing required parameter: {parameter}", tool_name
        )
        self.parameter = parameter


class TypeMismatchError(ToolValidationError):
    def __init__(self, tool_name: str, parameter: str, expected: str, actual: str) -> None:
        super().__init__(
            f"tool {tool_name!r}: parameter {parameter}: expected {expected}, got {actual}",
            tool_name,
        )
        self.parameter = parameter
        self.expected = expected
        self.actual = actual


# --- execution ---------------------------------------------------------------


class NoHandlerError(ToolRelayError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"no handler for tool {tool_name!r}")
        self.tool_name = tool_name


class NonRetryableError(ToolRelayError):
    """A tool failed with an error outside the retryable set."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"non-retryable error: {cause}")
        self.__cause__ = cause


class RetriesExhaustedError(ToolRelayError):
    """Every retry attempt failed; the last failure is chained as the cause."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"max retry attempts ({attempts}) exceeded: {last_error}")
        self.attempts = attempts
        self.last_error = last_error
        self.__cause__ = last_error


class ToolBatchError(ToolRelayError):
    """A batch stopped because one of its calls failed under stop-on-error.

    Attributes:
        tool_name: Name of the call whose error is reported.
        results: Results collected so far. Serial batches stop after the
            failing call; parallel batches always hold one result per call.
    """

    def __init__(
        self, tool_name: str, cause: BaseException, results: list["ToolCallResult"]
    ) -> None:
        super().__init__(f"tool {tool_name!r} failed: {cause}")
        self.tool_name = tool_name
        self.results = results
        self.__cause__ = cause


class ToolArgumentsError(ToolRelayError):
    """The model produced tool call arguments that are not a JSON object."""

    def __init__(self, tool_name: str, raw_arguments: str, cause: Exception | None = None) -> None:
        super().__init__(f"invalid tool call args for {tool_name}: {raw_arguments!r}")
        self.tool_name = tool_name
        self.raw_arguments = raw_arguments
        self.__cause__ = cause


# --- conversation control ----------------------------------------------------


class ToolRoundLimitExceeded(ToolRelayError):
    def __init__(self, max_rounds: int) -> None:
        super().__init__(f"exceeded maximum tool call rounds ({max_rounds})")
        self.max_rounds = max_rounds


class NoPendingCallError(ToolRelayError):
    def __init__(self, call_id: str) -> None:
        super().__init__(f"no pending tool call with ID {call_id}")
        self.call_id = call_id


# --- provider errors ---------------------------------------------------------


class ProviderError(ToolRelayError):
    """Public wrapper for transport failures.

    Attributes:
        original_exc: The underlying provider exception.
    """

    original_exc: Exception

    def __init__(self, message: str, original_exc: Exception) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIError,
    genai_errors.APIError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIConnectionError,
    TimeoutError,
    ConnectionError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (openai.RateLimitError,)


def _is_rate_limited(exc: Exception) -> bool:
    if isinstance(exc, RATE_LIMIT_ERRORS):
        return True
    code: Any = getattr(exc, "code", None)
    return isinstance(exc, genai_errors.APIError) and code == 429


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> ProviderError:
    """Wrap an SDK exception in ProviderError with a friendly, concise message."""
    log = logger or logging.getLogger("tool_relay.errors")

    if isinstance(exc, ProviderError):
        return exc
    if _is_rate_limited(exc):
        msg = "Rate-limit exceeded - please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem - unable to reach the LLM provider"
    elif isinstance(exc, API_ERRORS):
        msg = "Provider reported an error"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception", extra={"exc": exc})
    return ProviderError(f"{msg}: {exc}", exc)
