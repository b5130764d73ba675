"""
Exception hierarchy for the compliance scanner
"""


class ScannerError(Exception):
    """Base exception for all scanner errors"""
    pass


class ConfigurationError(ScannerError):
    """Invalid control definitions or scan configuration"""
    pass


class UnknownResourceKind(ConfigurationError):
    """A control references a resource kind that is not registered"""

    def __init__(self, kind: str):
        super().__init__(f"Unknown resource kind: '{kind}'")
        self.kind = kind


class ProbeError(ScannerError):
    """A resource could not determine one or more of its properties"""
    pass


class NoCurrentBranch(ProbeError):
    """Git branch listing has no line marked as the current branch"""
    pass


class PredicateError(ScannerError):
    """An assertion cannot be evaluated as written"""
    pass


class PredicateTypeMismatch(PredicateError):
    """Expected literal is incompatible with the property's value type"""
    pass


class TransportError(ScannerError):
    """Base class for failures reported by a transport"""
    pass


class NotFound(TransportError):
    """Path does not exist on the target"""
    pass


class PermissionDenied(TransportError):
    """Path exists but cannot be read with the transport's privileges"""
    pass


class TransportUnavailable(TransportError):
    """The channel to the target is gone"""
    pass
