"""AMCP client toolkit: connection, envelope codec, server queries and command sequences.

Public names resolve on first access so `amcpkit --help` does not import the socket layer.
"""
import importlib

_EXPORTS = {
    "AmcpClient": ".devices.amcp",
    "AmcpResponse": ".devices.codec",
    "ResponseOutcome": ".devices.codec",
    "AmcpError": ".devices.errors",
    "CasparServer": ".devices.caspar",
    "SequenceRunner": ".runners.sequence",
    "Step": ".runners.sequence",
}
__all__ = sorted(_EXPORTS)


def __getattr__(name):
    module = _EXPORTS.get(name)
    if module is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    value = getattr(importlib.import_module(module, __name__), name)
    globals()[name] = value
    return value
