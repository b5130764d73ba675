"""Tests for report summaries and JSON output."""

import json

import pytest

from host_compliance_scanner import __version__
from host_compliance_scanner.core.errors import ScannerError
from host_compliance_scanner.core.output import OutputEngine
from host_compliance_scanner.core.results import AssertionResult, ControlResult, Report, Status


def _control(control_id, status, impact=0.5, severity="medium"):
    return ControlResult(
        control_id=control_id,
        title=control_id,
        status=status,
        impact=impact,
        severity=severity,
        results=[AssertionResult(path="0", status=status, description="file('/x') should exist")],
    )


def _report():
    return Report(
        target="memory://test",
        controls=[
            _control("a", Status.PASSED, impact=1.0, severity="critical"),
            _control("b", Status.FAILED, impact=0.7, severity="high"),
            _control("c", Status.ERRORED, impact=0.3, severity="low"),
            _control("d", Status.SKIPPED, impact=1.0, severity="critical"),
        ],
        started_at="2026-01-01T00:00:00+00:00",
        finished_at="2026-01-01T00:00:01+00:00",
    )


def test_summary():
    """Test counts and impact-weighted score ignore skipped controls."""
    summary = _report().summary()

    assert summary["total_controls"] == 4
    assert summary["by_status"] == {"passed": 1, "failed": 1, "skipped": 1, "errored": 1}
    assert summary["failures_by_severity"] == {"high": 1, "low": 1}
    assert summary["compliance_score"] == 50.0


def test_summary_without_scored_controls():
    report = Report(target="t", controls=[_control("d", Status.SKIPPED)])

    assert report.summary()["compliance_score"] == 100.0


def test_format_json():
    data = OutputEngine.format_json(_report(), {"profile": "linux-baseline"})

    assert data["metadata"]["tool"] == "hostguard"
    assert data["metadata"]["version"] == __version__
    assert data["metadata"]["target"] == "memory://test"
    assert data["metadata"]["profile"] == "linux-baseline"
    assert [c["status"] for c in data["controls"]] == ["passed", "failed", "errored", "skipped"]
    assert data["controls"][0]["results"][0] == {
        "path": "0",
        "status": "passed",
        "description": "file('/x') should exist",
        "actual_value_summary": "",
        "message": "",
    }
    json.dumps(data)


def test_save_report(tmp_path):
    output_file = tmp_path / "reports" / "run.json"

    OutputEngine.save_report(OutputEngine.format_json(_report()), str(output_file))

    saved = json.loads(output_file.read_text())
    assert saved["summary"]["by_status"]["failed"] == 1


def test_save_report_unwritable_path(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(ScannerError):
        OutputEngine.save_report({"controls": []}, str(blocker / "run.json"))
