"""Reporting sinks that receive final scenario outcomes."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Protocol

from rigger.core.models import ScenarioOutcome, ScenarioStatus

logger = logging.getLogger(__name__)


class ReportSink(Protocol):
    """Receives exactly one outcome per scenario."""

    def report(self, outcome: ScenarioOutcome) -> None:
        ...

    def close(self) -> None:
        ...


class CollectingReportSink:
    """Thread-safe in-memory sink."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcomes: List[ScenarioOutcome] = []

    def report(self, outcome: ScenarioOutcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)

    def close(self) -> None:
        pass

    @property
    def outcomes(self) -> List[ScenarioOutcome]:
        with self._lock:
            return list(self._outcomes)

    def summary(self) -> dict:
        outcomes = self.outcomes
        return {
            "total": len(outcomes),
            "passed": sum(1 for o in outcomes if o.status == ScenarioStatus.PASSED),
            "failed": sum(1 for o in outcomes if o.status == ScenarioStatus.FAILED),
            "skipped": sum(1 for o in outcomes if o.status == ScenarioStatus.SKIPPED),
            "attempts": sum(o.attempts for o in outcomes),
        }


class JsonReportSink(CollectingReportSink):
    """Collects outcomes and writes them to a JSON file on close."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path

    def close(self) -> None:
        self.save()

    def save(self) -> Path:
        """Save results to JSON file.

        Returns:
            Path to results file
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "generated_at": datetime.now().isoformat(),
            "summary": self.summary(),
            "scenarios": [o.to_dict() for o in self.outcomes],
        }

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info(f"Results saved to {self.path}")
        return self.path
