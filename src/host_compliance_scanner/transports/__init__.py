"""Transports that connect the scanner to a target"""

from .local import LocalTransport
from .memory import MemoryFile, MemoryTransport

__all__ = [
    "LocalTransport",
    "MemoryFile",
    "MemoryTransport",
]
