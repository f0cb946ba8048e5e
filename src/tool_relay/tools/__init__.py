"""Tool execution engine: validation, caching, retry and batch execution."""

from .builder import Schema, ToolBuilder
from .cache import ToolCache, cache_key
from .executor import ExecutorMetrics, ToolExecutor
from .retry import DEFAULT_RETRY_CONFIG, RetryConfig, retryable_handler
from .validator import ToolValidator

__all__ = [
    "Schema",
    "ToolBuilder",
    "ToolCache",
    "cache_key",
    "ExecutorMetrics",
    "ToolExecutor",
    "DEFAULT_RETRY_CONFIG",
    "RetryConfig",
    "retryable_handler",
    "ToolValidator",
]
