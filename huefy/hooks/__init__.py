"""Send lifecycle hooks."""

from .manager import HookManager, HookType

__all__ = ["HookManager", "HookType"]
