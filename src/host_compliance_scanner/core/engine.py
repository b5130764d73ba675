"""
Run engine that evaluates controls against a target
"""

import logging
import concurrent.futures
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Set

from .framework import Control
from .registry import ResourceCache, ResourceRegistry
from .results import ControlResult, Report, Status
from .transport import Transport


def select_controls(controls: Iterable[Control], control_ids: Sequence[str] = None,
                    tags: Sequence[str] = None) -> List[Control]:
    """Filter controls by id and/or tag, preserving order"""
    selected = list(controls)
    if control_ids:
        wanted = set(control_ids)
        selected = [control for control in selected if control.control_id in wanted]
    if tags:
        wanted_tags = set(tags)
        selected = [control for control in selected if control.tags & wanted_tags]
    return selected


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RunEngine:
    """Core engine that orchestrates control evaluation.

    Each call to ``run`` builds a fresh resource cache, so a run is one
    consistent snapshot of the target and nothing is shared between runs.
    """

    def __init__(self, registry: ResourceRegistry = None, parallel: bool = True,
                 max_workers: int = 5, timeout: Optional[float] = None):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.registry = registry if registry is not None else ResourceRegistry()
        self.parallel = parallel
        self.max_workers = max_workers
        self.timeout = timeout

    def run(self, transport: Transport, controls: Iterable[Control]) -> Report:
        """Evaluate controls in the order supplied and return the report"""
        controls = list(controls)
        report = Report(target=transport.name, started_at=_utc_now())

        if not controls:
            logging.warning("No controls selected for evaluation")
            report.finished_at = _utc_now()
            return report

        logging.info(f"Running {len(controls)} controls against {transport.name}...")

        resources = ResourceCache(self.registry, transport)
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        duplicates = self._duplicate_positions(controls)

        def evaluate(position: int, control: Control) -> ControlResult:
            if position in duplicates:
                return control.errored_result(f"Duplicate control id '{control.control_id}'")
            return self._run_control(control, resources, deadline)

        if self.parallel and len(controls) > 1:
            # Run controls in parallel
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(evaluate, position, control)
                           for position, control in enumerate(controls)]
                results = [self._collect(future, control)
                           for future, control in zip(futures, controls)]
        else:
            # Run controls sequentially
            results = [evaluate(position, control) for position, control in enumerate(controls)]

        report.controls = results
        report.finished_at = _utc_now()

        summary = report.summary()["by_status"]
        logging.info(f"Run completed: {summary['passed']} passed, {summary['failed']} failed, "
                     f"{summary['errored']} errored, {summary['skipped']} skipped")
        return report

    def _run_control(self, control: Control, resources: ResourceCache,
                     deadline: Optional[float]) -> ControlResult:
        if deadline is not None and time.monotonic() >= deadline:
            logging.warning(f"Skipping control {control.control_id}: run timeout exceeded")
            return control.create_result(
                Status.SKIPPED,
                message=f"Run timeout of {self.timeout}s exceeded before control started",
            )

        try:
            result = control.evaluate(resources)
            logging.info(f"Completed control: {control.control_id} ({result.status.value}, "
                         f"{len(result.results)} assertions)")
            return result
        except Exception as e:
            logging.error(f"Control {control.control_id} failed: {str(e)}")
            return control.errored_result(f"Unexpected error: {e}")

    @staticmethod
    def _collect(future: concurrent.futures.Future, control: Control) -> ControlResult:
        try:
            return future.result()
        except Exception as e:
            logging.error(f"Control {control.control_id} failed: {str(e)}")
            return control.errored_result(f"Unexpected error: {e}")

    @staticmethod
    def _duplicate_positions(controls: List[Control]) -> Set[int]:
        seen = set()
        duplicates = set()
        for position, control in enumerate(controls):
            if control.control_id in seen:
                logging.error(f"Duplicate control id: {control.control_id}")
                duplicates.add(position)
            seen.add(control.control_id)
        return duplicates
