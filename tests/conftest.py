"""
Pytest configuration and fixtures for HostGuard tests.
"""

import pytest

from host_compliance_scanner.core.assertion import Assertion, Predicate, ResourceRef
from host_compliance_scanner.core.group import AssertionGroup, Combinator
from host_compliance_scanner.core.registry import ResourceCache, ResourceRegistry
from host_compliance_scanner.transports.memory import MemoryTransport


def file_ref(path):
    return ResourceRef("file", (path,))


def check(ref, prop, predicate, expected=None, negate=False):
    """Shorthand for building an Assertion"""
    return Assertion(resource=ref, property=prop, predicate=Predicate(predicate),
                     expected=expected, negate=negate)


def group(*children, combinator="all", gate=None):
    return AssertionGroup(children=children, combinator=Combinator(combinator), gate=gate)


@pytest.fixture
def transport():
    """Memory target with a correctly protected /etc/shadow"""
    memory = MemoryTransport(name="memory://test")
    memory.add_file("/etc/shadow", content=b"root:*:19000:0:99999:7:::\n", mode=0o640, group="shadow")
    memory.add_file("/etc/passwd", content=b"root:x:0:0:root:/root:/bin/bash\n", mode=0o644)
    memory.add_file("/tmp", file_type="directory", mode=0o1777)
    return memory


@pytest.fixture
def registry():
    return ResourceRegistry()


@pytest.fixture
def resources(registry, transport):
    """Fresh per-run resource cache over the memory transport"""
    return ResourceCache(registry, transport)
