"""Error taxonomy for deep population."""

from typing import Any, Dict, Optional, Type
from contextlib import contextmanager


class DeepPopulateError(Exception):
    """Base exception for all deep population errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}


class ConfigurationError(DeepPopulateError):
    """No store handle can be resolved, or configuration is unreadable."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code="configuration", context=context)
        self.config_key = config_key


class FetchError(DeepPopulateError):
    """A store fetch-and-attach call failed."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        entity_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code="fetch", context=context)
        self.path = path
        self.entity_type = entity_type


class UsageError(DeepPopulateError):
    """The entry point was misused or the root type is not populatable."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code="usage", context=context)


@contextmanager
def ErrorContext(
    operation: str,
    convert_to: Optional[Type[DeepPopulateError]] = None,
    **context
):
    """Tag errors raised inside the block with ``operation`` and ``context``.

    Library errors keep their own context values and are re-raised. Any other
    exception propagates untouched unless ``convert_to`` is given, in which
    case it is wrapped and chained.

    Example:
        with ErrorContext("load_config", convert_to=ConfigurationError, path=path):
            data = json.load(f)
    """
    tags = {"operation": operation, **context}
    try:
        yield
    except DeepPopulateError as e:
        for key, value in tags.items():
            e.context.setdefault(key, value)
        raise
    except Exception as e:
        if convert_to is None:
            raise
        tags["original_error"] = type(e).__name__
        raise convert_to(f"{operation} failed: {e}", context=tags) from e
