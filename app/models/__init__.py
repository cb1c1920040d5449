from app.models.user import User, Visibility
from app.models.relationship import Relationship, RelationshipType

__all__ = ["User", "Visibility", "Relationship", "RelationshipType"]
