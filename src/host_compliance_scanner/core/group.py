"""
Assertion groups: a recursive tree of assertions folded by ALL / ONE_OF
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .assertion import Assertion, ResourceRef
from .resource import Resource
from .results import AssertionResult, Status


class Combinator(str, Enum):
    ALL = "all"
    ONE_OF = "one_of"


@dataclass(frozen=True)
class AssertionGroup:
    """Ordered children folded by a combinator.

    ``gate`` is an optional precondition: when it does not pass, the whole
    group is left out of evaluation and out of the report.
    """
    children: Tuple["Node", ...] = ()
    combinator: Combinator = Combinator.ALL
    gate: Optional[Assertion] = None
    label: str = ""

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))


Node = Union[Assertion, AssertionGroup]


def fold_all(statuses: Iterable[Status]) -> Status:
    statuses = list(statuses)
    if any(status == Status.ERRORED for status in statuses):
        return Status.ERRORED
    if all(status == Status.PASSED for status in statuses):
        return Status.PASSED
    return Status.FAILED


def fold_one_of(statuses: Iterable[Status]) -> Status:
    # No alternatives means no alternative succeeded
    statuses = list(statuses)
    if not statuses:
        return Status.FAILED
    if any(status == Status.PASSED for status in statuses):
        return Status.PASSED
    if all(status == Status.ERRORED for status in statuses):
        return Status.ERRORED
    return Status.FAILED


FOLDS: Dict[Combinator, Callable[[Iterable[Status]], Status]] = {
    Combinator.ALL: fold_all,
    Combinator.ONE_OF: fold_one_of,
}


def child_path(parent: str, index: int) -> str:
    return f"{parent}.{index}" if parent else str(index)


def iter_assertions(node: Node, path: str = "") -> Iterator[Tuple[str, Assertion]]:
    """Yield (path, assertion) for every assertion in the tree, gates excluded"""
    if isinstance(node, Assertion):
        yield path, node
        return
    for index, child in enumerate(node.children):
        yield from iter_assertions(child, child_path(path, index))


def resource_refs(node: Node) -> List[ResourceRef]:
    """Every resource referenced by the tree, gates included, first-seen order"""
    refs: List[ResourceRef] = []

    def visit(current: Node):
        if isinstance(current, Assertion):
            if current.resource not in refs:
                refs.append(current.resource)
            return
        if current.gate is not None:
            visit(current.gate)
        for child in current.children:
            visit(child)

    visit(node)
    return refs


class Evaluation:
    """Evaluates one control's tree and collects its assertion results.

    The first transport failure aborts the rest of the evaluation: every
    assertion not yet evaluated is still reported, as ERRORED, so each path
    appears exactly once.
    """

    def __init__(self, resolve: Callable[[ResourceRef], Resource]):
        self.resolve = resolve
        self.results: List[AssertionResult] = []
        self.abort_reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.abort_reason is not None

    def check(self, assertion: Assertion, path: str) -> AssertionResult:
        """Evaluate a single assertion without recording it"""
        if self.aborted:
            return AssertionResult(
                path=path,
                status=Status.ERRORED,
                description=assertion.describe(),
                message=f"not evaluated: {self.abort_reason}",
            )
        try:
            return assertion.evaluate(self.resolve(assertion.resource), path)
        except Exception as e:
            self.abort_reason = f"{type(e).__name__}: {e}"
            logging.error(f"Probe of {assertion.resource} failed, aborting control: {e}")
            return AssertionResult(
                path=path,
                status=Status.ERRORED,
                description=assertion.describe(),
                message=self.abort_reason,
            )

    def check_gate(self, gate: Assertion, path: str) -> Optional[AssertionResult]:
        """Evaluate a precondition; None once the evaluation is aborted.

        After an abort the subtree is kept so its paths are reported as not
        evaluated.
        """
        result = self.check(gate, path)
        if self.aborted:
            return None
        if result.status == Status.FAILED:
            logging.debug(f"Precondition at '{path or 'root'}' not met, skipping: {gate.describe()}")
        elif result.status == Status.ERRORED:
            logging.warning(f"Precondition at '{path or 'root'}' could not be evaluated: {result.message}")
        return result

    def error_subtree(self, node: Node, path: str, message: str) -> Status:
        """Report every assertion under ``node`` as errored without evaluating it"""
        for sub_path, assertion in iter_assertions(node, path):
            self.results.append(AssertionResult(
                path=sub_path,
                status=Status.ERRORED,
                description=assertion.describe(),
                message=message,
            ))
        return Status.ERRORED

    def evaluate(self, node: Node, path: str = "") -> Optional[Status]:
        """Fold the tree; None means the node was removed by a precondition"""
        if isinstance(node, Assertion):
            result = self.check(node, path)
            self.results.append(result)
            return result.status

        if node.gate is not None:
            gate = self.check_gate(node.gate, path)
            if gate is not None and gate.status == Status.FAILED:
                return None
            if gate is not None and gate.status == Status.ERRORED:
                return self.error_subtree(node, path, f"Precondition errored: {gate.message}")

        statuses = []
        for index, child in enumerate(node.children):
            status = self.evaluate(child, child_path(path, index))
            if status is not None:
                statuses.append(status)

        if node.children and not statuses:
            return None
        return FOLDS[node.combinator](statuses)
