"""Tests for control evaluation and the run engine."""

import time

import pytest

from host_compliance_scanner.core.assertion import ResourceRef
from host_compliance_scanner.core.engine import RunEngine, select_controls
from host_compliance_scanner.core.errors import ConfigurationError, TransportUnavailable
from host_compliance_scanner.core.framework import Control, severity_for_impact
from host_compliance_scanner.core.registry import ResourceRegistry
from host_compliance_scanner.core.resource import Resource
from host_compliance_scanner.core.results import Status
from host_compliance_scanner.transports.memory import MemoryTransport

from .conftest import check, file_ref, group


def shadow_control(path="/etc/shadow", control_id="shadow-permissions", impact=1.0):
    ref = file_ref(path)
    return Control(
        control_id=control_id,
        title="Shadow file is protected",
        impact=impact,
        root=group(
            check(ref, "mode", "cmp", "0640"),
            check(ref, "writable_by_others", "be_true", negate=True),
        ),
    )


def test_protected_shadow_passes(transport):
    """Test the canonical shadow control passes on a protected host."""
    report = RunEngine(parallel=False).run(transport, [shadow_control()])

    result = report.controls[0]
    assert result.status == Status.PASSED
    assert [r.status for r in result.results] == [Status.PASSED, Status.PASSED]
    assert result.severity == "critical"
    assert report.target == "memory://test"


def test_missing_shadow_errors_both_assertions(transport):
    """Test a missing file errors, not fails, metadata assertions."""
    report = RunEngine(parallel=False).run(transport, [shadow_control("/etc/gshadow")])

    result = report.controls[0]
    assert result.status == Status.ERRORED
    assert [r.status for r in result.results] == [Status.ERRORED, Status.ERRORED]


def test_world_writable_shadow_fails(transport):
    transport.add_file("/etc/shadow", mode=0o646)

    result = RunEngine(parallel=False).run(transport, [shadow_control()]).controls[0]

    assert result.status == Status.FAILED
    assert [r.status for r in result.results] == [Status.FAILED, Status.FAILED]


def test_unknown_kind_errors_only_its_control(transport):
    """Test a bad resource reference does not affect sibling controls."""
    bad = Control(
        control_id="registry",
        root=group(check(ResourceRef("registry_key", ("HKLM",)), "value", "eq", "1")),
    )

    report = RunEngine().run(transport, [bad, shadow_control()])

    assert [c.status for c in report.controls] == [Status.ERRORED, Status.PASSED]
    assert "Unknown resource kind" in report.controls[0].message
    assert [r.path for r in report.controls[0].results] == ["0"]
    assert transport.call_count("stat") == 1


def test_bad_arguments_error_the_control(transport):
    bad = Control(
        control_id="two-paths",
        root=group(check(ResourceRef("file", ("/a", "/b")), "exists", "exist")),
    )

    result = RunEngine().run(transport, [bad]).controls[0]

    assert result.status == Status.ERRORED
    assert "exactly one path" in result.message


class FlakyTransport(MemoryTransport):
    """Channel that drops whenever a given path is touched"""

    def __init__(self, bad_path, **kwargs):
        super().__init__(**kwargs)
        self.bad_path = bad_path

    def stat(self, path):
        if path == self.bad_path:
            self._record("stat", path)
            raise TransportUnavailable("connection reset by peer")
        return super().stat(path)


def test_transport_failure_aborts_only_its_control(transport):
    flaky = FlakyTransport("/etc/gshadow", files=transport.files, name="flaky")

    report = RunEngine(parallel=False).run(flaky, [
        shadow_control("/etc/gshadow", control_id="gshadow"),
        shadow_control(),
    ])

    gshadow, shadow = report.controls
    assert gshadow.status == Status.ERRORED
    assert gshadow.message.startswith("Evaluation aborted: TransportUnavailable")
    assert [r.status for r in gshadow.results] == [Status.ERRORED, Status.ERRORED]
    assert gshadow.results[1].message.startswith("not evaluated")
    assert shadow.status == Status.PASSED


class SlowResource(Resource):
    kind = "slow"
    properties = ("done",)

    def probe(self):
        time.sleep(0.3)
        return {"done": True}


def test_timeout_skips_controls_not_started(transport):
    """Test controls that have not started by the deadline are skipped."""
    registry = ResourceRegistry()
    registry.register("slow", SlowResource)
    controls = [
        Control(control_id=f"slow-{i}", root=group(check(ResourceRef("slow", (i,)), "done", "be_true")))
        for i in range(3)
    ]

    report = RunEngine(registry=registry, parallel=False, timeout=0.1).run(transport, controls)

    statuses = [c.status for c in report.controls]
    assert statuses == [Status.PASSED, Status.SKIPPED, Status.SKIPPED]
    assert "timeout" in report.controls[1].message
    assert report.controls[1].results == []


def test_parallel_run_preserves_order(transport):
    controls = [shadow_control(control_id=f"c{i}") for i in range(10)]

    report = RunEngine(parallel=True, max_workers=4).run(transport, controls)

    assert [c.control_id for c in report.controls] == [f"c{i}" for i in range(10)]
    assert transport.call_count("stat", "/etc/shadow") == 1


def test_runs_are_repeatable(transport):
    """Test two runs over an unchanged target report identical controls."""
    controls = [shadow_control(), shadow_control("/etc/gshadow", control_id="gshadow")]
    engine = RunEngine(max_workers=2)

    first = engine.run(transport, controls)
    second = engine.run(transport, controls)

    assert [c.to_dict() for c in first.controls] == [c.to_dict() for c in second.controls]
    assert transport.call_count("stat", "/etc/shadow") == 2


def test_only_if_skips_control(transport):
    """Test a failing control-level precondition skips without evaluating."""
    control = Control(
        control_id="sshd-config",
        root=group(check(file_ref("/etc/ssh/sshd_config"), "content", "match", "^PermitRootLogin no")),
        only_if=check(file_ref("/etc/ssh/sshd_config"), "exists", "exist"),
    )

    result = RunEngine().run(transport, [control]).controls[0]

    assert result.status == Status.SKIPPED
    assert result.message.startswith("Precondition not met")
    assert result.results == []
    assert transport.call_count("read_file") == 0


def test_control_with_every_check_gated_off_is_skipped(transport):
    missing = file_ref("/etc/missing")
    control = Control(
        control_id="gated",
        root=group(group(check(missing, "mode", "cmp", "0600"), gate=check(missing, "exists", "exist"))),
    )

    result = RunEngine().run(transport, [control]).controls[0]

    assert result.status == Status.SKIPPED


def test_duplicate_control_id(transport):
    report = RunEngine(parallel=False).run(transport, [shadow_control(), shadow_control()])

    assert [c.status for c in report.controls] == [Status.PASSED, Status.ERRORED]
    assert "Duplicate control id" in report.controls[1].message


def test_empty_run(transport):
    report = RunEngine().run(transport, [])

    assert report.controls == []
    assert report.summary()["compliance_score"] == 100.0


def test_invalid_engine_and_control_settings():
    with pytest.raises(ValueError):
        RunEngine(max_workers=0)
    with pytest.raises(ConfigurationError):
        Control(control_id="x", impact=1.5)
    with pytest.raises(ConfigurationError):
        Control(control_id="")


@pytest.mark.parametrize("impact,severity", [
    (0.0, "none"), (0.3, "low"), (0.5, "medium"), (0.7, "high"), (1.0, "critical"),
])
def test_severity_for_impact(impact, severity):
    assert severity_for_impact(impact) == severity


def test_select_controls():
    controls = [
        Control(control_id="a", tags={"files"}),
        Control(control_id="b", tags={"network"}),
        Control(control_id="c", tags={"files", "network"}),
    ]

    assert [c.control_id for c in select_controls(controls, ["c", "a"])] == ["a", "c"]
    assert [c.control_id for c in select_controls(controls, tags=["network"])] == ["b", "c"]
    assert len(select_controls(controls)) == 3


def test_errored_only_if_errors_control(transport):
    """Test a control precondition that cannot be evaluated is ERRORED, not SKIPPED."""
    transport.add_file("/etc/locked.conf", content=b"enabled\n", readable=False)
    control = Control(
        control_id="locked",
        impact=0.9,
        root=group(
            check(file_ref("/etc/shadow"), "mode", "cmp", "0640"),
            check(file_ref("/etc/shadow"), "owner", "eq", "root"),
        ),
        only_if=check(file_ref("/etc/locked.conf"), "content", "match", "enabled"),
    )

    report = RunEngine().run(transport, [control])

    result = report.controls[0]
    assert result.status == Status.ERRORED
    assert result.message.startswith("Precondition errored:")
    assert [(r.path, r.status) for r in result.results] == [("0", Status.ERRORED), ("1", Status.ERRORED)]
    assert report.summary()["compliance_score"] == 0.0
    assert transport.call_count("stat", "/etc/shadow") == 0


def test_errored_group_gate_errors_control(transport):
    transport.add_file("/etc/locked.conf", readable=False)
    gated = group(
        check(file_ref("/etc/shadow"), "mode", "cmp", "0640"),
        gate=check(file_ref("/etc/locked.conf"), "content", "match", "enabled"),
    )

    result = RunEngine().run(transport, [Control(control_id="gated", root=group(gated))]).controls[0]

    assert result.status == Status.ERRORED
    assert [r.path for r in result.results] == ["0.0"]


def test_description_reaches_result(transport):
    control = Control(
        control_id="described",
        description="Shadow file must not be world writable",
        root=group(check(file_ref("/etc/shadow"), "writable_by_others", "be_true", negate=True)),
    )

    result = RunEngine().run(transport, [control]).controls[0]

    assert result.description == "Shadow file must not be world writable"
    assert result.to_dict()["description"] == "Shadow file must not be world writable"
