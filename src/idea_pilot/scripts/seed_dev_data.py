"""Seed development data: two profiles, a few community messages and a conversation."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from idea_pilot.application.dto.principal import Principal
from idea_pilot.infrastructure.db.base import Base
from idea_pilot.infrastructure.db.models import ProfileModel
from idea_pilot.infrastructure.db.session import AsyncSessionLocal, engine
from idea_pilot.infrastructure.db.uow import SqlAlchemyUoW
from idea_pilot.logging_config import configure_logging
from idea_pilot.services import community_service, conversation_service, message_service

logger = logging.getLogger(__name__)

ALICE_ID = uuid.UUID("00000000-0000-4000-8000-00000000a11c")
BOB_ID = uuid.UUID("00000000-0000-4000-8000-000000000b0b")


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        now = datetime.now(timezone.utc) - timedelta(minutes=5)
        for user_id, name, email in (
            (ALICE_ID, "Alice Maker", "alice@example.com"),
            (BOB_ID, "Bob Builder", "bob@example.com"),
        ):
            if await session.get(ProfileModel, user_id) is None:
                session.add(ProfileModel(
                    id=user_id, full_name=name, email=email, created_at=now, updated_at=now,
                ))
        await session.commit()

        uow = SqlAlchemyUoW(session)
        alice = Principal(user_id=ALICE_ID, email="alice@example.com")
        bob = Principal(user_id=BOB_ID, email="bob@example.com")

        await community_service.send_community_message(
            alice, "Anyone built a soil moisture sensor yet?", uow,
        )
        await community_service.send_community_message(
            bob, "Yes! Capacitive ones last much longer than resistive.", uow,
        )

        conversation, created = await conversation_service.get_or_create_conversation(
            alice, BOB_ID, uow,
        )
        await message_service.send_private_message(conversation.id, alice, "hello", uow)
        await message_service.send_private_message(
            conversation.id, bob, "Hi Alice, how is the project going?", uow,
        )
        logger.info(
            "Seeded profiles and conversation %s (created=%s)", conversation.id, created,
        )


def main() -> None:
    configure_logging()
    asyncio.run(seed())


if __name__ == "__main__":
    main()
