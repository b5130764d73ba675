"""
Package resource: installation state via dpkg or rpm
"""

from typing import Any, Dict

from ..core.errors import ProbeError
from ..core.resource import Resource
from ..core.transport import quote


class PackageResource(Resource):
    """Installed-package lookup.

    Debian-family targets are queried with ``dpkg-query``, everything else
    with ``rpm``. ``version`` is absent when the package is not installed.
    """

    kind = "package"
    properties = ("installed", "version")

    @classmethod
    def normalize_args(cls, args) -> tuple:
        if len(args) != 1:
            raise TypeError(f"package resource takes exactly one name, got {len(args)} arguments")
        return (str(args[0]).strip(),)

    @property
    def name(self) -> str:
        return self.args[0]

    def probe(self) -> Dict[str, Any]:
        manager = self._detect_manager()
        if manager == "dpkg":
            return self._probe_dpkg()
        return self._probe_rpm()

    def _detect_manager(self) -> str:
        result = self.transport.execute(
            "if command -v dpkg-query >/dev/null 2>&1; then echo dpkg; "
            "elif command -v rpm >/dev/null 2>&1; then echo rpm; fi"
        )
        manager = result.stdout.strip()
        if manager not in ("dpkg", "rpm"):
            raise ProbeError("no supported package manager (dpkg, rpm) found on the target")
        return manager

    def _probe_dpkg(self) -> Dict[str, Any]:
        result = self.transport.execute(
            f"dpkg-query -W -f='${{Status}}\\t${{Version}}' {quote(self.name)} 2>/dev/null"
        )
        status, _, version = result.stdout.partition("\t")
        if result.ok and status.strip().endswith(" installed"):
            return {"installed": True, "version": version.strip()}
        return self._not_installed()

    def _probe_rpm(self) -> Dict[str, Any]:
        result = self.transport.execute(
            f"rpm -q --qf '%{{VERSION}}-%{{RELEASE}}' {quote(self.name)} 2>/dev/null"
        )
        if result.ok:
            return {"installed": True, "version": result.stdout.strip()}
        return self._not_installed()

    def _not_installed(self) -> Dict[str, Any]:
        return {
            "installed": False,
            "version": ProbeError(f"package {self.name} is not installed"),
        }
