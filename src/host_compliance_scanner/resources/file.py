"""
File resource: existence, type, ownership, permission bits and content
"""

import posixpath
import stat as stat_module
from typing import Any, Dict

from ..core.errors import ProbeError
from ..core.resource import Resource

_PERMISSION_BITS = {
    "readable_by_owner": stat_module.S_IRUSR,
    "writable_by_owner": stat_module.S_IWUSR,
    "executable_by_owner": stat_module.S_IXUSR,
    "readable_by_group": stat_module.S_IRGRP,
    "writable_by_group": stat_module.S_IWGRP,
    "executable_by_group": stat_module.S_IXGRP,
    "readable_by_others": stat_module.S_IROTH,
    "writable_by_others": stat_module.S_IWOTH,
    "executable_by_others": stat_module.S_IXOTH,
    "setuid": stat_module.S_ISUID,
    "setgid": stat_module.S_ISGID,
    "sticky": stat_module.S_ISVTX,
}

# Set when any of owner, group or others has the permission
_ANY_PERMISSION = {
    "readable": stat_module.S_IRUSR | stat_module.S_IRGRP | stat_module.S_IROTH,
    "writable": stat_module.S_IWUSR | stat_module.S_IWGRP | stat_module.S_IWOTH,
    "executable": stat_module.S_IXUSR | stat_module.S_IXGRP | stat_module.S_IXOTH,
}


class FileResource(Resource):
    """A path on the target.

    A single ``stat`` populates every property except ``content``, which is
    read on first access. ``exists`` and the ``is_*`` type flags are plain
    facts for a missing path; ownership, mode and permission bits of a
    missing path are absent with a probe error.
    """

    kind = "file"
    properties = (
        "exists", "is_file", "is_directory", "is_symlink",
        "mode", "owner", "group",
    ) + tuple(_PERMISSION_BITS) + tuple(_ANY_PERMISSION)
    deferred = {"content": "_probe_content"}

    @classmethod
    def normalize_args(cls, args) -> tuple:
        if len(args) != 1:
            raise TypeError(f"file resource takes exactly one path, got {len(args)} arguments")
        return (posixpath.normpath(str(args[0])),)

    @property
    def path(self) -> str:
        return self.args[0]

    def probe(self) -> Dict[str, Any]:
        info = self.transport.stat(self.path)
        values: Dict[str, Any] = {
            "exists": info.exists,
            "is_file": info.exists and info.is_file,
            "is_directory": info.exists and info.is_directory,
            "is_symlink": info.exists and info.is_symlink,
        }

        if not info.exists:
            missing = ProbeError(f"{self.path}: does not exist")
            for name in ("mode", "owner", "group", *_PERMISSION_BITS, *_ANY_PERMISSION):
                values[name] = missing
            return values

        values["mode"] = info.mode
        values["owner"] = info.owner
        values["group"] = info.group
        for name, bit in {**_PERMISSION_BITS, **_ANY_PERMISSION}.items():
            values[name] = bool(info.mode & bit)
        return values

    def _probe_content(self) -> str:
        exists = self.read("exists")
        if exists.error:
            raise ProbeError(exists.error)
        if not exists.value:
            raise ProbeError(f"{self.path}: does not exist")
        return self.transport.read_file(self.path).decode("utf-8", errors="replace")
