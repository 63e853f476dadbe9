"""
Schema generation for EntityLab models.
"""

from .builder import SchemaBuilder

__all__ = ["SchemaBuilder"]
