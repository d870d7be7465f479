"""Import all models so Base.metadata sees every table."""
from idea_pilot.infrastructure.db.models.community_message import CommunityMessageModel
from idea_pilot.infrastructure.db.models.conversation import ConversationModel
from idea_pilot.infrastructure.db.models.outbox import OutboxMessageModel
from idea_pilot.infrastructure.db.models.private_message import PrivateMessageModel
from idea_pilot.infrastructure.db.models.profile import ProfileModel

__all__ = [
    "CommunityMessageModel",
    "ConversationModel",
    "OutboxMessageModel",
    "PrivateMessageModel",
    "ProfileModel",
]
