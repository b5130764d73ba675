"""
HostGuard - host compliance scanner

Evaluates declarative security controls against a live host: resource
providers probe files, commands, services, packages and repositories over a
transport, assertions check the probed properties, and the run engine folds
everything into a pass/fail/skip report.
"""

__version__ = "1.0.0"
__author__ = "Security Team"
__email__ = "security@example.com"

from .core.framework import Control
from .core.engine import RunEngine
from .core.registry import ResourceRegistry
from .core.output import OutputEngine
from .core.loader import load_controls

__all__ = [
    "Control",
    "RunEngine",
    "ResourceRegistry",
    "OutputEngine",
    "load_controls",
]
