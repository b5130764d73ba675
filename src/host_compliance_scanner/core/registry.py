"""
Registry mapping resource kinds to provider classes, and the per-run cache
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from .errors import ConfigurationError, UnknownResourceKind
from .resource import Resource
from .transport import Transport

ResourceConstructor = Callable[..., Resource]


class ResourceRegistry:
    """Registry for managing resource providers"""

    def __init__(self, include_defaults: bool = True):
        self.providers: Dict[str, ResourceConstructor] = {}
        if include_defaults:
            self._register_default_resources()

    def _register_default_resources(self):
        """Register the built-in resource providers"""
        from ..resources.command import CommandResource
        from ..resources.file import FileResource
        from ..resources.git import GitResource
        from ..resources.group import GroupResource
        from ..resources.os_info import OsResource
        from ..resources.package import PackageResource
        from ..resources.service import ServiceResource

        default_resources = [
            FileResource,
            CommandResource,
            ServiceResource,
            PackageResource,
            GroupResource,
            OsResource,
            GitResource,
        ]

        for provider in default_resources:
            self.register(provider.kind, provider)

    def register(self, kind: str, constructor: ResourceConstructor):
        """Register a provider; a later registration replaces an earlier one"""
        if kind in self.providers:
            logging.debug(f"Replacing provider for resource kind '{kind}'")
        self.providers[kind] = constructor

    def unregister(self, kind: str):
        self.providers.pop(kind, None)

    def has_kind(self, kind: str) -> bool:
        return kind in self.providers

    def get_provider(self, kind: str) -> ResourceConstructor:
        """Get the provider for a kind, raising UnknownResourceKind"""
        try:
            return self.providers[kind]
        except KeyError:
            raise UnknownResourceKind(kind) from None

    def normalize_args(self, kind: str, args: tuple) -> tuple:
        provider = self.get_provider(kind)
        normalize = getattr(provider, "normalize_args", None)
        return normalize(args) if normalize else tuple(args)

    def create(self, kind: str, transport: Transport, args: tuple) -> Resource:
        """Instantiate a resource without caching"""
        return self.get_provider(kind)(transport, *args)

    def list_kinds(self) -> Dict[str, List[str]]:
        """List registered kinds with the properties each exposes"""
        listing = {}
        for kind, provider in sorted(self.providers.items()):
            names = getattr(provider, "property_names", None)
            listing[kind] = names() if names else []
        return listing


class ResourceCache:
    """Resources instantiated during one run, keyed by (kind, normalized args).

    Every assertion that references the same object receives the same
    instance, so the object is probed at most once per run.
    """

    def __init__(self, registry: ResourceRegistry, transport: Transport):
        self.registry = registry
        self.transport = transport
        self._resources: Dict[Tuple[str, tuple], Resource] = {}
        self._lock = threading.Lock()

    def validate(self, kind: str, args: tuple = ()):
        """Check that a reference can be resolved, without probing it.

        Raises:
            UnknownResourceKind: the kind is not registered.
            ConfigurationError: the provider rejects the arguments.
        """
        try:
            self.registry.normalize_args(kind, tuple(args))
        except TypeError as e:
            raise ConfigurationError(f"{kind}: {e}") from None

    def resolve(self, kind: str, args: tuple = ()) -> Resource:
        """Return the cached resource for (kind, args), creating it on first use"""
        key = (kind, self.registry.normalize_args(kind, tuple(args)))
        with self._lock:
            resource = self._resources.get(key)
            if resource is None:
                resource = self.registry.create(kind, self.transport, key[1])
                self._resources[key] = resource
            return resource

    def get(self, kind: str, args: tuple = ()) -> Optional[Resource]:
        key = (kind, self.registry.normalize_args(kind, tuple(args)))
        with self._lock:
            return self._resources.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._resources)
