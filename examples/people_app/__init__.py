"""
People registry sample application showcasing EntityLab lifecycle operations.
"""

from .demo import bootstrap_session, persist_registry, run_demo

__all__ = ["bootstrap_session", "persist_registry", "run_demo"]
