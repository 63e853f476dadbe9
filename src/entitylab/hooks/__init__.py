"""
Lifecycle hooks registry for EntityLab entities.
"""

from .dispatcher import LIFECYCLE_EVENTS, HookDispatcher, hooks

__all__ = ["HookDispatcher", "LIFECYCLE_EVENTS", "hooks"]
