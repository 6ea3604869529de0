"""Command line entry point for the sensor statistics batch job."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer application lives in ``cli.app``; it is not re-exported here so
# that ``cli.app`` keeps resolving to the module and its attributes can be
# patched in tests.

__all__ = []
