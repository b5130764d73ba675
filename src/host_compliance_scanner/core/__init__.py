"""Core framework components for the host compliance scanner"""

from .assertion import Assertion, Predicate, ResourceRef
from .engine import RunEngine, select_controls
from .framework import Control
from .group import AssertionGroup, Combinator
from .output import OutputEngine
from .registry import ResourceCache, ResourceRegistry
from .resource import PropertyReading, Resource
from .results import AssertionResult, ControlResult, Report, Status
from .transport import CommandResult, FileInfo, ShellTransport, Transport

__all__ = [
    "Assertion",
    "AssertionGroup",
    "AssertionResult",
    "Combinator",
    "CommandResult",
    "Control",
    "ControlResult",
    "FileInfo",
    "OutputEngine",
    "Predicate",
    "PropertyReading",
    "Report",
    "Resource",
    "ResourceCache",
    "ResourceRef",
    "ResourceRegistry",
    "RunEngine",
    "ShellTransport",
    "Status",
    "Transport",
    "select_controls",
]
