"""
Fire-and-collect-errors helper for non-critical side effects.

The primary operation has already succeeded when these run; a failing task
is logged as a warning and reported back, never raised.
"""
from typing import Callable, Iterable, List, Tuple

from ..logging_config import StructuredLogger, api_logger

Task = Tuple[str, Callable[[], object]]


def run_best_effort(tasks: Iterable[Task], logger: StructuredLogger = api_logger, **context) -> List[Tuple[str, Exception]]:
    """Run each ``(name, callable)`` independently and collect failures."""
    failures: List[Tuple[str, Exception]] = []
    for name, task in tasks:
        try:
            task()
        except Exception as exc:
            failures.append((name, exc))
            logger.warning(
                f"Best-effort task '{name}' failed",
                task=name,
                error_type=type(exc).__name__,
                error_message=str(exc),
                **context,
            )
    return failures
