from __future__ import annotations

from typing import Protocol

from idea_pilot.application.repositories.community import (
    CommunityMessageReader,
    CommunityMessageWriter,
)
from idea_pilot.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from idea_pilot.application.repositories.message import (
    PrivateMessageReader,
    PrivateMessageWriter,
)
from idea_pilot.application.repositories.outbox import OutboxWriter
from idea_pilot.application.repositories.profile import ProfileReader


class UnitOfWork(Protocol):
    profiles: ProfileReader
    community: CommunityMessageReader
    community_w: CommunityMessageWriter
    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: PrivateMessageReader
    messages_w: PrivateMessageWriter
    outbox: OutboxWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
