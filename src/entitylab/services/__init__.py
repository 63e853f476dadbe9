"""
Service layer turning session operations into result values.
"""

from .lifecycle import LifecycleManager
from .queries import QueryGateway
from .reconciler import ConsistencyReconciler

__all__ = ["ConsistencyReconciler", "LifecycleManager", "QueryGateway"]
