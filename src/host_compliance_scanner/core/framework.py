"""
Core framework classes: controls and their evaluation
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, TYPE_CHECKING

from .assertion import Assertion
from .errors import ConfigurationError
from .group import AssertionGroup, Evaluation, iter_assertions, resource_refs
from .results import AssertionResult, ControlResult, Status

if TYPE_CHECKING:
    from .registry import ResourceCache


def severity_for_impact(impact: float) -> str:
    """Map an impact score in [0, 1] to a severity label"""
    if impact < 0.01:
        return "none"
    if impact < 0.4:
        return "low"
    if impact < 0.7:
        return "medium"
    if impact < 0.9:
        return "high"
    return "critical"


@dataclass(frozen=True)
class Control:
    """A named, independently scored unit wrapping one assertion tree.

    ``only_if`` gates the whole control: when it does not pass, the control
    is reported as skipped and its tree is never evaluated.
    """
    control_id: str
    title: str = ""
    description: str = ""
    impact: float = 0.5
    tags: FrozenSet[str] = field(default_factory=frozenset)
    root: AssertionGroup = field(default_factory=AssertionGroup)
    only_if: Optional[Assertion] = None

    def __post_init__(self):
        if not self.control_id:
            raise ConfigurationError("Control id must not be empty")
        if not 0.0 <= self.impact <= 1.0:
            raise ConfigurationError(
                f"Control {self.control_id}: impact {self.impact} is outside [0.0, 1.0]"
            )
        object.__setattr__(self, "tags", frozenset(self.tags))

    @property
    def severity(self) -> str:
        return severity_for_impact(self.impact)

    def evaluate(self, resources: "ResourceCache") -> ControlResult:
        """Evaluate the control against the run's resource cache"""
        refs = resource_refs(self.root)
        if self.only_if is not None:
            refs.append(self.only_if.resource)
        try:
            for ref in refs:
                resources.validate(ref.kind, ref.args)
        except ConfigurationError as e:
            return self.errored_result(str(e))

        evaluation = Evaluation(lambda ref: resources.resolve(ref.kind, ref.args))

        if self.only_if is not None:
            gate = evaluation.check(self.only_if, "only_if")
            if evaluation.aborted:
                return self.errored_result(evaluation.abort_reason)
            if gate.status == Status.ERRORED:
                return self.errored_result(f"Precondition errored: {gate.message}")
            if gate.status == Status.FAILED:
                return self.create_result(
                    Status.SKIPPED, message=f"Precondition not met: {self.only_if.describe()}"
                )

        status = evaluation.evaluate(self.root)

        if evaluation.aborted:
            return self.create_result(
                Status.ERRORED, evaluation.results,
                message=f"Evaluation aborted: {evaluation.abort_reason}",
            )
        if status is None:
            return self.create_result(Status.SKIPPED, message="All checks skipped by preconditions")
        return self.create_result(status, evaluation.results)

    def errored_result(self, message: str) -> ControlResult:
        """Result listing every assertion path as errored, nothing evaluated"""
        results = [
            AssertionResult(
                path=path,
                status=Status.ERRORED,
                description=assertion.describe(),
                message=message,
            )
            for path, assertion in iter_assertions(self.root)
        ]
        return self.create_result(Status.ERRORED, results, message=message)

    def create_result(self, status: Status, results: List[AssertionResult] = None,
                      message: str = "") -> ControlResult:
        """Helper method to create a control result"""
        return ControlResult(
            control_id=self.control_id,
            title=self.title,
            description=self.description,
            status=status,
            impact=self.impact,
            severity=self.severity,
            tags=sorted(self.tags),
            results=list(results or []),
            message=message,
        )
