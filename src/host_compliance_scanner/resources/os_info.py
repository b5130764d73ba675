"""
Operating system resource
"""

import shlex
from typing import Any, Dict

from ..core.errors import ProbeError
from ..core.resource import Resource

OS_RELEASE_PATH = "/etc/os-release"

# os-release ID / ID_LIKE values mapped to a platform family
_FAMILIES = {
    "debian": "debian",
    "ubuntu": "debian",
    "linuxmint": "debian",
    "raspbian": "debian",
    "rhel": "redhat",
    "centos": "redhat",
    "fedora": "redhat",
    "rocky": "redhat",
    "almalinux": "redhat",
    "ol": "redhat",
    "amzn": "redhat",
    "sles": "suse",
    "opensuse": "suse",
    "opensuse-leap": "suse",
    "alpine": "alpine",
    "arch": "arch",
}


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse the shell-style assignments of /etc/os-release."""
    fields = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        fields[key.strip()] = parts[0] if parts else ""
    return fields


def platform_family(fields: Dict[str, str]) -> str:
    candidates = [fields.get("ID", "")] + fields.get("ID_LIKE", "").split()
    for candidate in candidates:
        family = _FAMILIES.get(candidate.lower())
        if family:
            return family
    return "unknown"


class OsResource(Resource):
    """Distribution name, release and family of the target"""

    kind = "os"
    properties = ("name", "release", "family", "arch")

    @classmethod
    def normalize_args(cls, args) -> tuple:
        if args:
            raise TypeError("os resource takes no arguments")
        return ()

    def probe(self) -> Dict[str, Any]:
        fields = parse_os_release(self.transport.read_file(OS_RELEASE_PATH).decode("utf-8", errors="replace"))
        if "ID" not in fields:
            raise ProbeError(f"{OS_RELEASE_PATH} has no ID field")

        uname = self.transport.execute("uname -m")
        arch: Any = uname.stdout.strip() if uname.ok else ProbeError(
            f"uname -m failed (exit {uname.exit_code})")
        return {
            "name": fields["ID"],
            "release": fields.get("VERSION_ID", ""),
            "family": platform_family(fields),
            "arch": arch,
        }
