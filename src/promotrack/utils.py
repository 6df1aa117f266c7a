import functools
import logging
import uuid
from datetime import datetime


def generate_id(prefix: str) -> str:
    """Generate an identity value like ``BANK_20250105T101500_3F9A1C``.

    Only uniqueness matters to the table layer; the format is informative.
    """
    stamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    return f"{prefix}_{stamp}_{uuid.uuid4().hex[:6].upper()}"


def _describe_args(args) -> str:
    # Only scalars go into the tag; row data can be arbitrarily large.
    return ", ".join(
        repr(arg) for arg in args if isinstance(arg, str | int | float | bool)
    )


def log_failures(component: str):
    """Decorator that logs failures with a ``Component.operation(args)`` tag.

    The exception is re-raised unchanged, so telemetry is captured even when
    a caller recovers from the error.
    """

    def decorator(func):
        func_logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception as exc:
                func_logger.error(
                    "%s.%s(%s) failed: %s",
                    component,
                    func.__name__,
                    _describe_args(args),
                    exc,
                )
                raise

        return wrapper

    return decorator
