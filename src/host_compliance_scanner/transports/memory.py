"""
In-memory transport for deterministic tests and dry runs
"""

import posixpath
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from ..core.errors import NotFound, PermissionDenied, TransportUnavailable
from ..core.transport import CommandResult, FileInfo, Transport


@dataclass
class MemoryFile:
    """A fake path: regular file, directory or symlink"""
    content: bytes = b""
    mode: int = 0o644
    owner: str = "root"
    group: str = "root"
    file_type: str = "file"
    readable: bool = True


CannedReply = Union[CommandResult, str, Tuple[str, str, int]]


class MemoryTransport(Transport):
    """Serves files and command results from dictionaries.

    Commands are matched on the exact command line; unknown commands exit
    with 127 like a missing binary. Every call is recorded in ``calls`` as
    ``(operation, argument)``. Setting ``unavailable`` makes every call raise
    TransportUnavailable.
    """

    def __init__(self, files: Dict[str, MemoryFile] = None,
                 commands: Dict[str, CannedReply] = None, name: str = "memory"):
        self.name = name
        self.files = {posixpath.normpath(path): f for path, f in (files or {}).items()}
        self.commands: Dict[str, CommandResult] = {
            command: _as_result(reply) for command, reply in (commands or {}).items()
        }
        self.unavailable: Optional[str] = None
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def add_file(self, path: str, **kwargs) -> MemoryFile:
        memory_file = MemoryFile(**kwargs)
        self.files[posixpath.normpath(path)] = memory_file
        return memory_file

    def add_command(self, command_line: str, stdout: str = "", stderr: str = "",
                    exit_code: int = 0):
        self.commands[command_line] = CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)

    def call_count(self, operation: str, argument: str = None) -> int:
        with self._lock:
            return sum(1 for op, arg in self.calls
                       if op == operation and (argument is None or arg == argument))

    def _record(self, operation: str, argument: str):
        with self._lock:
            self.calls.append((operation, argument))
        if self.unavailable:
            raise TransportUnavailable(self.unavailable)

    def execute(self, command_line: str) -> CommandResult:
        self._record("execute", command_line)
        result = self.commands.get(command_line)
        if result is None:
            return CommandResult(stdout="", stderr=f"sh: command not found: {command_line}", exit_code=127)
        return result

    def stat(self, path: str) -> FileInfo:
        self._record("stat", path)
        memory_file = self.files.get(posixpath.normpath(path))
        if memory_file is None:
            return FileInfo(exists=False)
        return FileInfo(
            exists=True,
            mode=memory_file.mode,
            owner=memory_file.owner,
            group=memory_file.group,
            is_file=memory_file.file_type == "file",
            is_directory=memory_file.file_type == "directory",
            is_symlink=memory_file.file_type == "symlink",
        )

    def read_file(self, path: str) -> bytes:
        self._record("read_file", path)
        memory_file = self.files.get(posixpath.normpath(path))
        if memory_file is None or memory_file.file_type == "directory":
            raise NotFound(f"{path}: no such file")
        if not memory_file.readable:
            raise PermissionDenied(f"{path}: permission denied")
        return memory_file.content


def _as_result(reply: CannedReply) -> CommandResult:
    if isinstance(reply, CommandResult):
        return reply
    if isinstance(reply, str):
        return CommandResult(stdout=reply, stderr="", exit_code=0)
    stdout, stderr, exit_code = reply
    return CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)
