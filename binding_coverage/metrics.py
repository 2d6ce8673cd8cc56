"""
Run metrics for a coverage run.

Counts headers and declarations as the reconciler classifies them, counts
emitted errors by exception type, and times the global pass and each
module pass. Module pass timings are keyed by module name.
"""

import time
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator

logger = logging.getLogger(__name__)

# Pass key of the global header pass, the same "" module name that global
# declarations and reports carry
GLOBAL_PASS = ""


class MetricsCollector:
    """
    Thread-safe tallies for one coverage run.

    Counters incremented by the reconciler:
        headers.scanned
        declarations.extracted, declarations.private, declarations.ignored,
        declarations.bound, declarations.missing

    Usage:
        metrics = MetricsCollector()
        with metrics.time_pass("font"):
            metrics.increment("headers.scanned")
        metrics.summary()["module_pass_ms"]["font"]
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._errors: Dict[str, int] = {}
        self._pass_ms: Dict[str, float] = {}

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def record_error(self, error_type: str) -> None:
        """Count one emitted run error by its exception class name."""
        with self._lock:
            self._errors[error_type] = self._errors.get(error_type, 0) + 1

    @contextmanager
    def time_pass(self, module: str = GLOBAL_PASS) -> Iterator[None]:
        """Time one pass; ``module`` is the module name, or "" for the global pass."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            with self._lock:
                self._pass_ms[module] = elapsed_ms

    def summary(self) -> Dict[str, Any]:
        """
        Returns:
            dict with ``counters``, ``errors`` (count per error type),
            ``global_pass_ms`` (None if the pass never ran) and
            ``module_pass_ms`` (module name -> ms, in pass order).
        """
        with self._lock:
            return {
                "counters": dict(self._counters),
                "errors": dict(self._errors),
                "global_pass_ms": self._pass_ms.get(GLOBAL_PASS),
                "module_pass_ms": {
                    name: ms for name, ms in self._pass_ms.items() if name != GLOBAL_PASS
                },
            }

    def log_summary(self, level: int = logging.INFO) -> None:
        summary = self.summary()
        logger.log(level, f"Counters: {summary['counters']}")
        if summary["errors"]:
            logger.log(level, f"Errors by type: {summary['errors']}")
        if summary["global_pass_ms"] is not None:
            logger.log(level, f"Global pass: {summary['global_pass_ms']:.1f} ms")
        for module, ms in summary["module_pass_ms"].items():
            logger.log(level, f"Module '{module}' pass: {ms:.1f} ms")

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._errors.clear()
            self._pass_ms.clear()
