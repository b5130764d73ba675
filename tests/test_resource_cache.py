"""Tests for the resource registry and the per-run resource cache."""

import threading

import pytest

from host_compliance_scanner.core.errors import (
    ConfigurationError,
    TransportUnavailable,
    UnknownResourceKind,
)
from host_compliance_scanner.core.registry import ResourceCache, ResourceRegistry
from host_compliance_scanner.core.resource import Resource


class CountingResource(Resource):
    """Resource whose probe blocks until released, to force contention"""

    kind = "counting"
    properties = ("value",)
    release = None

    def probe(self):
        if self.release is not None:
            self.release.wait(timeout=5)
        return {"value": len(self.args)}


class BrokenResource(Resource):
    kind = "broken"
    properties = ("value",)

    def probe(self):
        raise RuntimeError("probe exploded")


def test_default_registry_kinds(registry):
    """Test every built-in provider is registered."""
    kinds = registry.list_kinds()

    assert list(kinds) == ["command", "file", "git", "group", "os", "package", "service"]
    assert "content" in kinds["file"]
    assert "writable_by_others" in kinds["file"]


def test_unknown_kind_raises(registry):
    with pytest.raises(UnknownResourceKind) as excinfo:
        registry.get_provider("registry_key")

    assert excinfo.value.kind == "registry_key"
    assert isinstance(excinfo.value, ConfigurationError)


def test_register_replaces_and_unregister_removes():
    """Test a later registration wins and unregister forgets the kind."""
    registry = ResourceRegistry(include_defaults=False)
    registry.register("counting", BrokenResource)
    registry.register("counting", CountingResource)

    assert registry.get_provider("counting") is CountingResource

    registry.unregister("counting")
    assert not registry.has_kind("counting")


def test_resolve_returns_same_instance(resources):
    """Test identical references resolve to one instance."""
    first = resources.resolve("file", ("/etc/shadow",))
    second = resources.resolve("file", ("/etc//shadow",))

    assert first is second
    assert len(resources) == 1
    assert resources.get("file", ("/etc/shadow",)) is first


def test_different_args_give_different_instances(resources):
    assert resources.resolve("file", ("/etc/shadow",)) is not resources.resolve("file", ("/etc/passwd",))


def test_validate_rejects_bad_args(resources):
    """Test provider argument errors surface as configuration errors."""
    with pytest.raises(ConfigurationError):
        resources.validate("file", ("/a", "/b"))
    with pytest.raises(UnknownResourceKind):
        resources.validate("nope", ())


def test_properties_probe_once(resources, transport):
    """Test repeated reads of any property stat the path once."""
    shadow = resources.resolve("file", ("/etc/shadow",))

    for name in ("mode", "owner", "writable_by_others", "mode", "exists"):
        shadow.read(name)

    assert shadow.probe_count == 1
    assert transport.call_count("stat", "/etc/shadow") == 1


def test_concurrent_reads_probe_once(transport):
    """Test threads racing on a fresh resource share a single probe."""
    registry = ResourceRegistry(include_defaults=False)
    registry.register("counting", CountingResource)
    cache = ResourceCache(registry, transport)

    release = threading.Event()
    CountingResource.release = release
    try:
        values = []

        def reader():
            resource = cache.resolve("counting", ("a", "b"))
            values.append(resource.read("value").value)

        threads = [threading.Thread(target=reader) for _ in range(8)]
        for thread in threads:
            thread.start()
        release.set()
        for thread in threads:
            thread.join(timeout=5)
    finally:
        CountingResource.release = None

    assert values == [2] * 8
    assert cache.resolve("counting", ("a", "b")).probe_count == 1


def test_unknown_property_reads_as_error(resources):
    reading = resources.resolve("file", ("/etc/shadow",)).read("colour")

    assert reading.absent
    assert "no property 'colour'" in reading.error


def test_transport_failure_is_cached(resources, transport):
    """Test a dead channel is reported again without reprobing."""
    transport.unavailable = "connection reset"
    shadow = resources.resolve("file", ("/etc/shadow",))

    with pytest.raises(TransportUnavailable):
        shadow.read("mode")
    transport.unavailable = None
    with pytest.raises(TransportUnavailable):
        shadow.read("owner")

    assert shadow.probe_count == 1


def test_unexpected_probe_exception_propagates(transport):
    registry = ResourceRegistry(include_defaults=False)
    registry.register("broken", BrokenResource)
    resource = ResourceCache(registry, transport).resolve("broken")

    with pytest.raises(RuntimeError):
        resource.read("value")
    with pytest.raises(RuntimeError):
        resource.read("value")
    assert resource.probe_count == 1
