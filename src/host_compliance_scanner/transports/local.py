"""
Transport for the machine the scanner runs on
"""

import grp
import logging
import os
import pwd
import stat as stat_module
import subprocess

from ..core.errors import NotFound, PermissionDenied, TransportUnavailable
from ..core.transport import CommandResult, FileInfo, Transport

TIMEOUT_EXIT_CODE = 124


class LocalTransport(Transport):
    """Runs commands through the local shell and stats files directly"""

    name = "local"

    def __init__(self, command_timeout: int = 60, shell: str = "/bin/sh"):
        self.command_timeout = command_timeout
        self.shell = shell
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def execute(self, command_line: str) -> CommandResult:
        self.logger.debug(f"Executing: {command_line}")
        try:
            completed = subprocess.run(
                command_line,
                shell=True,
                executable=self.shell,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.command_timeout,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                stdout="",
                stderr=f"command timed out after {self.command_timeout}s",
                exit_code=TIMEOUT_EXIT_CODE,
            )
        except OSError as e:
            raise TransportUnavailable(f"Cannot start local shell {self.shell}: {e}")

        return CommandResult(
            stdout=completed.stdout,
            stderr=completed.stderr,
            exit_code=completed.returncode,
        )

    def stat(self, path: str) -> FileInfo:
        try:
            link_info = os.lstat(path)
        except FileNotFoundError:
            return FileInfo(exists=False)
        except PermissionError:
            raise PermissionDenied(f"{path}: permission denied")

        is_symlink = stat_module.S_ISLNK(link_info.st_mode)
        try:
            info = os.stat(path) if is_symlink else link_info
        except FileNotFoundError:
            # Dangling symlink
            info = link_info
        except PermissionError:
            raise PermissionDenied(f"{path}: permission denied")

        return FileInfo(
            exists=True,
            mode=stat_module.S_IMODE(info.st_mode),
            owner=_user_name(info.st_uid),
            group=_group_name(info.st_gid),
            is_file=stat_module.S_ISREG(info.st_mode),
            is_directory=stat_module.S_ISDIR(info.st_mode),
            is_symlink=is_symlink,
        )

    def read_file(self, path: str) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise NotFound(f"{path}: no such file")
        except IsADirectoryError:
            raise NotFound(f"{path}: is a directory")
        except PermissionError:
            raise PermissionDenied(f"{path}: permission denied")


def _user_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)
