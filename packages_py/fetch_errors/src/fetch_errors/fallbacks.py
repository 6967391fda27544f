"""
Fallback values for operations whose target may not exist

Example:
    @none_on_not_found
    def get_blob(name): ...

    exists = false_on_not_found(lambda: client.head(name))()
"""

import functools
import logging
from typing import Any, Callable, Iterator, Optional, TypeVar

from .exceptions import HttpResponseError, ResourceNotFoundError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _causes(error: Optional[BaseException]) -> Iterator[BaseException]:
    seen = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        yield error
        error = error.__cause__ or error.__context__


def is_not_found(error: BaseException) -> bool:
    """Whether ``error`` or anything in its cause chain means not found."""
    for cause in _causes(error):
        if isinstance(cause, ResourceNotFoundError):
            return True
        if isinstance(cause, HttpResponseError) and cause.status == 404:
            return True
    return False


def value_on_not_found(value: Any) -> Callable[[F], F]:
    """Decorator returning ``value`` instead of raising a not-found error."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as error:
                if not is_not_found(error):
                    raise
                logger.debug(f"{func.__name__}: not found, returning {value!r}")
                return value

        return wrapper  # type: ignore[return-value]

    return decorator


none_on_not_found = value_on_not_found(None)
false_on_not_found = value_on_not_found(False)
