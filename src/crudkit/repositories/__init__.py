"""
Repository layer.

Usage:
    from crudkit.repositories import CrudRepository, ModelBinding
"""

from .binding import ModelBinding
from .crud_repository import CrudRepository, Page
from .serializers import serialize_entity, serialize_many

__all__ = [
    "ModelBinding",
    "CrudRepository",
    "Page",
    "serialize_entity",
    "serialize_many",
]
