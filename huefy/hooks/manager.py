"""Hook manager for send lifecycle callbacks."""

import logging
from enum import Enum
from typing import Any, Callable, Optional
import inspect

logger = logging.getLogger(__name__)


class HookType(str, Enum):
    """Points in a send where callbacks run."""

    SEND_START = "send_start"
    SEND_SUCCESS = "send_success"
    SEND_ERROR = "send_error"
    RETRY = "retry"


class HookManager:
    """Manages callbacks observing email sends.

    Callbacks observe; a callback that raises is logged and skipped, so it
    never changes the outcome of the send it is watching.
    """

    def __init__(self):
        """Initialize hook manager."""
        self.hooks: dict[HookType, list[Callable]] = {ht: [] for ht in HookType}

    def register(self, hook_type: HookType, callback: Callable) -> None:
        """Register a hook callback.

        Args:
            hook_type: Type of hook
            callback: Callback taking the context dict (can be sync or async)
        """
        self.hooks[hook_type].append(callback)

    def has_hooks(self, hook_type: HookType) -> bool:
        return bool(self.hooks[hook_type])

    async def trigger(self, hook_type: HookType, context: dict[str, Any]) -> dict[str, Any]:
        """Trigger a hook.

        Args:
            hook_type: Type of hook to trigger
            context: Context data for the hook

        Returns:
            Context after all hooks execute
        """
        for callback in self.hooks[hook_type]:
            # Support both sync and async callbacks
            try:
                result = callback(context)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                name = getattr(callback, "__name__", repr(callback))
                logger.warning(f"✗ {hook_type.value} hook {name} failed: {e}")
                continue

            if result is not None:
                context = result

        return context

    def clear(self, hook_type: Optional[HookType] = None) -> None:
        """Clear hooks.

        Args:
            hook_type: Specific hook type to clear, or None to clear all
        """
        if hook_type:
            self.hooks[hook_type] = []
        else:
            for ht in HookType:
                self.hooks[ht] = []
