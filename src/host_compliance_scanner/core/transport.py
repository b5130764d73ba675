"""
Transport contract used by resource providers to reach a target host
"""

import base64
import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .errors import NotFound, PermissionDenied, TransportError


def quote(value: str) -> str:
    """Quote a value for use as a single shell argument."""
    return shlex.quote(str(value))


@dataclass(frozen=True)
class CommandResult:
    """Result of a command executed on the target"""
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        """Return True if command succeeded (exit code 0)."""
        return self.exit_code == 0


@dataclass(frozen=True)
class FileInfo:
    """Metadata for one path on the target"""
    exists: bool
    mode: int = 0
    owner: str = ""
    group: str = ""
    is_file: bool = False
    is_directory: bool = False
    is_symlink: bool = False


class Transport(ABC):
    """Narrow channel to a target: run commands, stat and read files"""

    name: str = "target"

    @abstractmethod
    def execute(self, command_line: str) -> CommandResult:
        """Run a shell command line on the target"""
        pass

    @abstractmethod
    def stat(self, path: str) -> FileInfo:
        """Return metadata for a path; a missing path has exists=False"""
        pass

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """Return file content, raising NotFound or PermissionDenied"""
        pass

    def close(self):
        """Release any connection held by the transport"""
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class ShellTransport(Transport):
    """Transport that derives stat and read_file from execute.

    Remote transports only have a command channel, so file metadata is
    gathered with coreutils ``stat`` and content is shipped back as base64.
    """

    _STAT_FORMAT = "%a|%U|%G|%F"

    def stat(self, path: str) -> FileInfo:
        q = quote(path)
        fmt = quote(self._STAT_FORMAT)
        script = (
            f"if [ -e {q} ] || [ -h {q} ]; then "
            f"stat -L -c {fmt} {q} 2>/dev/null || stat -c {fmt} {q} 2>/dev/null || echo denied; "
            f"if [ -h {q} ]; then echo symlink; fi; "
            f"elif LC_ALL=C stat -c %n {q} 2>&1 | grep -q 'Permission denied'; then echo denied; "
            f"else echo missing; fi"
        )
        result = self.execute(script)
        lines = result.stdout.strip().splitlines()
        if not lines:
            raise TransportError(f"stat {path}: no output (exit {result.exit_code}): {result.stderr}")

        first = lines[0].strip()
        if first == "missing":
            return FileInfo(exists=False)
        if first == "denied":
            raise PermissionDenied(f"{path}: permission denied")

        parts = first.split("|", 3)
        if len(parts) != 4:
            raise TransportError(f"stat {path}: unexpected output {first!r}")
        mode, owner, group, file_type = parts
        is_symlink = any(line.strip() == "symlink" for line in lines[1:])

        return FileInfo(
            exists=True,
            mode=int(mode, 8),
            owner=owner,
            group=group,
            is_file=file_type.startswith("regular"),
            is_directory=file_type == "directory",
            is_symlink=is_symlink or file_type == "symbolic link",
        )

    def read_file(self, path: str) -> bytes:
        q = quote(path)
        script = (
            f"if [ ! -e {q} ]; then exit 2; "
            f"elif [ -d {q} ]; then exit 4; "
            f"elif [ ! -r {q} ]; then exit 3; "
            f"else base64 {q}; fi"
        )
        result = self.execute(script)
        if result.exit_code == 2:
            raise NotFound(f"{path}: no such file")
        if result.exit_code == 3:
            raise PermissionDenied(f"{path}: permission denied")
        if result.exit_code == 4:
            raise NotFound(f"{path}: is a directory")
        if not result.ok:
            raise TransportError(f"read {path} failed (exit {result.exit_code}): {result.stderr}")
        return base64.b64decode("".join(result.stdout.split()))
