from app.services.relationship_store import RelationshipStore
from app.services.guardian import PrivacyGuardian, Subject
from app.services.relationship import RelationshipMutator, RelationshipAction
from app.services.stats import RelationshipStatsAggregator
from app.services.user import UserService

__all__ = [
    "RelationshipStore", "PrivacyGuardian", "Subject",
    "RelationshipMutator", "RelationshipAction",
    "RelationshipStatsAggregator", "UserService",
]
