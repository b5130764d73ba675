"""
Result data structures produced by a run
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Status(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass
class AssertionResult:
    """Outcome of one assertion, located by its path in the control's tree"""
    path: str
    status: Status
    description: str
    actual_value_summary: str = ""
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class ControlResult:
    """Outcome of one control"""
    control_id: str
    title: str
    status: Status
    impact: float
    severity: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    results: List[AssertionResult] = field(default_factory=list)
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "control_id": self.control_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "impact": self.impact,
            "severity": self.severity,
            "tags": list(self.tags),
            "message": self.message,
            "results": [result.to_dict() for result in self.results],
        }


@dataclass
class Report:
    """Control results of one run, in the order the controls were supplied.

    ``started_at`` and ``finished_at`` are the only time-dependent fields.
    """
    target: str
    controls: List[ControlResult] = field(default_factory=list)
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        """Counts by status and severity plus an impact-weighted score"""
        by_status = {status.value: 0 for status in Status}
        by_severity: Dict[str, int] = {}
        scored_impact = 0.0
        passed_impact = 0.0

        for result in self.controls:
            by_status[result.status.value] += 1
            if result.status in (Status.FAILED, Status.ERRORED):
                by_severity[result.severity] = by_severity.get(result.severity, 0) + 1
            if result.status != Status.SKIPPED:
                scored_impact += result.impact
                if result.status == Status.PASSED:
                    passed_impact += result.impact

        # Controls with zero impact are informational and do not move the score
        score = round(100.0 * passed_impact / scored_impact, 1) if scored_impact else 100.0

        return {
            "total_controls": len(self.controls),
            "by_status": by_status,
            "failures_by_severity": by_severity,
            "compliance_score": score,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "summary": self.summary(),
            "controls": [result.to_dict() for result in self.controls],
        }
