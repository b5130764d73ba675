"""
Service resource backed by systemd
"""

from typing import Any, Dict

from ..core.errors import ProbeError
from ..core.resource import Resource
from ..core.transport import quote

_ENABLED_STATES = ("enabled", "enabled-runtime", "static", "alias", "indirect")


def parse_systemctl_show(output: str) -> Dict[str, str]:
    """Parse ``key=value`` lines printed by ``systemctl show``."""
    fields = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            fields[key.strip()] = value.strip()
    return fields


class ServiceResource(Resource):
    kind = "service"
    properties = ("installed", "enabled", "running", "state")

    @classmethod
    def normalize_args(cls, args) -> tuple:
        if len(args) != 1:
            raise TypeError(f"service resource takes exactly one name, got {len(args)} arguments")
        return (str(args[0]).strip(),)

    @property
    def name(self) -> str:
        return self.args[0]

    def probe(self) -> Dict[str, Any]:
        result = self.transport.execute(
            f"systemctl show {quote(self.name)} --no-pager "
            f"--property=LoadState,UnitFileState,ActiveState,SubState"
        )
        if result.exit_code == 127:
            raise ProbeError("systemctl is not available on the target")
        if not result.ok:
            raise ProbeError(f"systemctl show {self.name} failed (exit {result.exit_code}): "
                             f"{result.stderr.strip()}")

        fields = parse_systemctl_show(result.stdout)
        if "LoadState" not in fields:
            raise ProbeError(f"systemctl show {self.name}: unexpected output {result.stdout!r}")

        active_state = fields.get("ActiveState", "")
        return {
            "installed": fields["LoadState"] == "loaded",
            "enabled": fields.get("UnitFileState", "") in _ENABLED_STATES,
            "running": active_state == "active" and fields.get("SubState", "") == "running",
            "state": active_state,
        }
