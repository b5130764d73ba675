"""
Unix group resource
"""

from typing import Any, Dict

from ..core.errors import ProbeError
from ..core.resource import Resource
from ..core.transport import quote


class GroupResource(Resource):
    """Group database entry looked up with ``getent group``"""

    kind = "group"
    properties = ("exists", "gid", "members")

    @classmethod
    def normalize_args(cls, args) -> tuple:
        if len(args) != 1:
            raise TypeError(f"group resource takes exactly one name, got {len(args)} arguments")
        return (str(args[0]).strip(),)

    @property
    def name(self) -> str:
        return self.args[0]

    def probe(self) -> Dict[str, Any]:
        result = self.transport.execute(f"getent group {quote(self.name)}")
        if result.exit_code == 2:
            missing = ProbeError(f"group {self.name} does not exist")
            return {"exists": False, "gid": missing, "members": missing}
        if not result.ok:
            raise ProbeError(f"getent group {self.name} failed (exit {result.exit_code}): "
                             f"{result.stderr.strip()}")

        # name:password:gid:member,member
        lines = result.stdout.strip().splitlines()
        fields = lines[0].split(":") if lines else []
        if len(fields) != 4:
            raise ProbeError(f"getent group {self.name}: unexpected output {result.stdout!r}")
        try:
            gid = int(fields[2])
        except ValueError:
            raise ProbeError(f"getent group {self.name}: invalid gid {fields[2]!r}")
        members = [member for member in fields[3].split(",") if member]
        return {"exists": True, "gid": gid, "members": members}
