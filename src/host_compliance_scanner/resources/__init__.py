"""Built-in resource providers"""

from .command import CommandResource
from .file import FileResource
from .git import GitResource, parse_branches, parse_current_branch
from .group import GroupResource
from .os_info import OsResource
from .package import PackageResource
from .service import ServiceResource

__all__ = [
    "CommandResource",
    "FileResource",
    "GitResource",
    "GroupResource",
    "OsResource",
    "PackageResource",
    "ServiceResource",
    "parse_branches",
    "parse_current_branch",
]
