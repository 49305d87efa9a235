"""
Advisory diagnostics channel.

Non-fatal conditions (inaccurate solver status, large state dimension,
convex-hull merging in high dimension) are recorded on an explicit
``Diagnostics`` sink that travels with the computation, and mirrored to the
module logger. They never change control flow.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

SOLVER_INACCURATE = "solver-inaccurate"
HIGH_DIMENSION = "high-dimension"
HULL_MERGE_ACCURACY = "hull-merge-accuracy"


@dataclass(frozen=True)
class Advisory:
    """One recorded warning."""

    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)


class Diagnostics:
    """
    Collects advisories for a single computation.

    Safe to share between the worker threads of one recursion step.
    """

    def __init__(self):
        self._advisories: List[Advisory] = []
        self._lock = threading.Lock()

    def warn(self, code: str, message: str, **context) -> Advisory:
        advisory = Advisory(code=code, message=message, context=dict(context))
        with self._lock:
            self._advisories.append(advisory)
        if context:
            details = ", ".join(f"{k}={v}" for k, v in sorted(context.items()))
            logger.warning("%s [%s]", message, details)
        else:
            logger.warning("%s", message)
        return advisory

    @property
    def advisories(self) -> List[Advisory]:
        with self._lock:
            return list(self._advisories)

    def codes(self) -> List[str]:
        return [a.code for a in self.advisories]

    def __len__(self) -> int:
        return len(self.advisories)
