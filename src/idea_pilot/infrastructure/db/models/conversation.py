from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, func, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from idea_pilot.infrastructure.db.base import Base

PAIR_INDEX_NAME = "uq_conversations_participant_pair"


class ConversationModel(Base):
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    participant1_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    participant2_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
        onupdate=text("now()"),
    )

    # relationships
    participant1 = relationship("ProfileModel", foreign_keys=[participant1_id], lazy="selectin")
    participant2 = relationship("ProfileModel", foreign_keys=[participant2_id], lazy="selectin")
    messages = relationship("PrivateMessageModel", back_populates="conversation", lazy="noload")

    __table_args__ = (
        # one conversation per unordered pair
        Index(
            PAIR_INDEX_NAME,
            func.least(participant1_id, participant2_id),
            func.greatest(participant1_id, participant2_id),
            unique=True,
        ),
        Index("ix_conversations_participant1", "participant1_id", updated_at.desc()),
        Index("ix_conversations_participant2", "participant2_id", updated_at.desc()),
    )
