"""
Command resource: output and exit status of a shell command
"""

import shlex
from typing import Any, Dict

from ..core.errors import ProbeError
from ..core.resource import Resource
from ..core.transport import quote


class CommandResource(Resource):
    """Runs a command line once and exposes its stdout, stderr and exit status.

    A non-zero exit status is a value, not a probe failure. ``exists`` asks
    the target shell whether the first word of the command resolves to an
    executable, without running the command itself.
    """

    kind = "command"
    properties = ("stdout", "stderr", "exit_status")
    deferred = {"exists": "_probe_exists"}

    @classmethod
    def normalize_args(cls, args) -> tuple:
        if len(args) != 1:
            raise TypeError(f"command resource takes exactly one command line, got {len(args)} arguments")
        return (str(args[0]).strip(),)

    @property
    def command_line(self) -> str:
        return self.args[0]

    def probe(self) -> Dict[str, Any]:
        result = self.transport.execute(self.command_line)
        return {
            "stdout": result.stdout,
            "stderr": result.stderr,
            "exit_status": result.exit_code,
        }

    def _probe_exists(self) -> bool:
        try:
            words = shlex.split(self.command_line)
        except ValueError as e:
            raise ProbeError(f"cannot parse command line {self.command_line!r}: {e}")
        if not words:
            return False
        result = self.transport.execute(f"command -v {quote(words[0])} >/dev/null 2>&1")
        return result.ok
