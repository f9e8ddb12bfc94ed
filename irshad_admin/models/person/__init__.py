# irshad_admin/models/person/__init__.py
"""
Person models package
"""

from .base import Person
from .info import ContactPoint
from .relationships import GuardianRelationship, SiblingRelationship

__all__ = [
    "Person",
    "ContactPoint",
    "GuardianRelationship",
    "SiblingRelationship",
]
