"""
Git repository resource: local branches and current branch
"""

from typing import Any, Dict, List

from ..core.errors import NoCurrentBranch, ProbeError
from ..core.resource import Resource
from ..core.transport import quote

_CURRENT_MARKER = "*"
_DETACHED_PREFIX = "(HEAD detached"


def _strip_marker(line: str) -> str:
    entry = line.strip()
    if entry.startswith(_CURRENT_MARKER):
        entry = entry[len(_CURRENT_MARKER):].strip()
    return entry


def parse_branches(output: str) -> List[str]:
    """Branch names from ``git branch`` output, in listed order.

    Leading whitespace and the current-branch marker are stripped. A
    detached-HEAD entry is not a branch and is skipped.

    Example:
        >>> parse_branches("  main\\n* testBranch\\n  feature/x")
        ['main', 'testBranch', 'feature/x']
    """
    branches = []
    for line in output.splitlines():
        entry = _strip_marker(line)
        if entry and not entry.startswith(_DETACHED_PREFIX):
            branches.append(entry)
    return branches


def parse_current_branch(output: str) -> str:
    """Name of the branch marked with ``*`` in ``git branch`` output.

    Raises:
        NoCurrentBranch: no line carries the marker, or HEAD is detached.
    """
    for line in output.splitlines():
        if line.strip().startswith(_CURRENT_MARKER):
            entry = _strip_marker(line)
            if not entry or entry.startswith(_DETACHED_PREFIX):
                raise NoCurrentBranch(f"HEAD is not on a branch: {line.strip()!r}")
            return entry
    raise NoCurrentBranch("no branch is marked as current in git branch output")


class GitResource(Resource):
    """A git directory (the ``.git`` path, passed to ``--git-dir``)"""

    kind = "git"
    properties = ("branches", "current_branch")
    deferred = {"last_commit": "_probe_last_commit"}

    @classmethod
    def normalize_args(cls, args) -> tuple:
        if len(args) != 1:
            raise TypeError(f"git resource takes exactly one git dir, got {len(args)} arguments")
        return (str(args[0]).rstrip("/") or "/",)

    @property
    def git_dir(self) -> str:
        return self.args[0]

    def _git(self, arguments: str):
        return self.transport.execute(f"git --git-dir {quote(self.git_dir)} {arguments}")

    def probe(self) -> Dict[str, Any]:
        result = self._git("branch")
        if not result.ok:
            raise ProbeError(f"git branch in {self.git_dir} failed (exit {result.exit_code}): "
                             f"{result.stderr.strip()}")

        try:
            current: Any = parse_current_branch(result.stdout)
        except NoCurrentBranch as e:
            current = e
        return {
            "branches": parse_branches(result.stdout),
            "current_branch": current,
        }

    def _probe_last_commit(self) -> str:
        result = self._git("log -1 --pretty=format:%h")
        if not result.ok:
            raise ProbeError(f"git log in {self.git_dir} failed (exit {result.exit_code}): "
                             f"{result.stderr.strip()}")
        return result.stdout.strip()
