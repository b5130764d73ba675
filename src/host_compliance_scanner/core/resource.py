"""
Base resource class: lazily probed, cached properties of one system object
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .errors import ProbeError, TransportError, TransportUnavailable
from .transport import Transport

PropertyValue = Union[str, List[str], int, bool, None]


@dataclass(frozen=True)
class PropertyReading:
    """Cached value of one property, or the reason it could not be probed"""
    value: PropertyValue = None
    error: Optional[str] = None

    @property
    def absent(self) -> bool:
        return self.value is None


class Resource(ABC):
    """Abstract base class for resource providers.

    A provider declares the property names it exposes and implements
    ``probe()``, which queries the transport once and returns a mapping of
    property name to value. A value may also be a ``ProbeError`` instance
    when only that property could not be determined; raising ``ProbeError``
    marks every property as absent.

    Expensive properties can be listed in ``deferred`` (property name to
    method name); they are probed separately on first access.

    Readings are cached for the lifetime of the instance. Concurrent readers
    block on a per-instance lock while the first one probes.
    """

    kind: str = ""
    properties: Tuple[str, ...] = ()
    deferred: Dict[str, str] = {}

    def __init__(self, transport: Transport, *args):
        self.transport = transport
        self.args = self.normalize_args(args)
        self.probe_count = 0
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._lock = threading.RLock()
        self._readings: Optional[Dict[str, PropertyReading]] = None
        self._deferred_readings: Dict[str, PropertyReading] = {}
        self._failure: Optional[BaseException] = None

    @classmethod
    def normalize_args(cls, args: Iterable[Any]) -> tuple:
        """Canonical form of constructor arguments, used as cache key"""
        return tuple(args)

    @classmethod
    def property_names(cls) -> List[str]:
        return list(cls.properties) + [name for name in cls.deferred if name not in cls.properties]

    @property
    def key(self) -> tuple:
        return (self.kind, self.args)

    def __str__(self) -> str:
        return f"{self.kind}({', '.join(repr(arg) for arg in self.args)})"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self}>"

    @abstractmethod
    def probe(self) -> Dict[str, Any]:
        """Query the transport and return property values"""
        pass

    def read(self, name: str) -> PropertyReading:
        """Return the cached reading for a property, probing on first use.

        Raises:
            TransportUnavailable: the channel failed during this or an
                earlier probe of this instance. Failures are not retried.
        """
        if name not in self.property_names():
            return PropertyReading(error=f"{self} has no property '{name}'")

        with self._lock:
            if self._failure is not None:
                raise self._failure

            if name in self.deferred:
                if name not in self._deferred_readings:
                    method = getattr(self, self.deferred[name])
                    readings = self._run_probe(lambda: {name: method()}, [name])
                    self._deferred_readings[name] = readings[name]
                return self._deferred_readings[name]

            if self._readings is None:
                self._readings = self._run_probe(self.probe, self.properties)
            return self._readings[name]

    def _run_probe(self, probe: Callable[[], Dict[str, Any]],
                   names: Iterable[str]) -> Dict[str, PropertyReading]:
        self.probe_count += 1
        self.logger.debug(f"Probing {self}")
        try:
            values = probe()
        except TransportUnavailable as e:
            self._failure = e
            raise
        except (ProbeError, TransportError) as e:
            self.logger.debug(f"Probe of {self} failed: {e}")
            return {name: PropertyReading(error=str(e)) for name in names}
        except Exception as e:
            self.logger.error(f"Unexpected error probing {self}: {e}")
            self._failure = e
            raise

        readings = {}
        for name in names:
            if name not in values:
                readings[name] = PropertyReading(error=f"{self}: probe did not report '{name}'")
                continue
            value = values[name]
            if isinstance(value, ProbeError):
                readings[name] = PropertyReading(error=str(value))
            else:
                readings[name] = PropertyReading(value=value)
        return readings
