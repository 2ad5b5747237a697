"""CLI package for querying the smart plug monitor."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer application lives in ``cli.app``. Tests patch attributes on that
# module path, so the package root does not re-export the Typer instance.

__all__ = []
