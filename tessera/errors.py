"""Error taxonomy shared by the client, the wire layer and the dispatcher."""

import builtins
import sys


class TesseraError(Exception):
    """Base class for all errors raised by tessera itself."""


class ConfigurationError(TesseraError):
    """Configuration was read before one was set."""


class ProtocolError(TesseraError):
    """The engine rejected a message or a response could not be decoded."""


class ValidationError(TesseraError):
    """A dispatch context is missing a field or has the wrong shape."""


class UnresolvedTaskDefinition(TesseraError):
    """No registered task matches a definition name."""

    def __init__(self, definition: str):
        super().__init__(f"Unresolved task definition: {definition}")
        self.definition = definition


class RemoteTaskError(TesseraError):
    """A task failed on the executing side.

    Raised as-is when the remote error kind has no local counterpart, and
    chained as the cause of the reconstructed error when it does.
    """

    def __init__(self, kind: str, message: str, trace: list[str] | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.trace = list(trace or [])

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


def qualified_name(cls: type) -> str:
    """Name an error type the way failure envelopes carry it."""
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def resolve_error_class(kind: str) -> type[Exception] | None:
    """Find the local exception type named by `kind`, if there is one."""
    if not kind:
        return None

    if "." not in kind:
        candidate = getattr(builtins, kind, None)
    else:
        candidate = _resolve_dotted(kind)

    if isinstance(candidate, type) and issubclass(candidate, Exception):
        return candidate
    return None


def _resolve_dotted(kind: str) -> object | None:
    # Longest already-loaded module prefix, then walk the qualname; never imports
    parts = kind.split(".")
    for split in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:split])
        obj: object | None = sys.modules.get(module_name)
        if obj is None:
            continue

        for attr in parts[split:]:
            obj = getattr(obj, attr, None)
            if obj is None:
                return None
        return obj
    return None
