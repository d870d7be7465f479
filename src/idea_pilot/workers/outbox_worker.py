"""Outbox worker: publishes pending row changes to the realtime topics."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import redis.asyncio as aioredis

from idea_pilot.application.ports.bus import EventPublisher
from idea_pilot.application.repositories.outbox import OutboxRecord
from idea_pilot.config import settings
from idea_pilot.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from idea_pilot.infrastructure.db.session import AsyncSessionLocal
from idea_pilot.infrastructure.db.uow import SqlAlchemyUoW
from idea_pilot.infrastructure.realtime.topics import topics_for_change
from idea_pilot.logging_config import configure_logging

logger = logging.getLogger(__name__)

BASE_DELAY_SECONDS = 5
MAX_DELAY_SECONDS = 300


def _calc_backoff(attempts: int) -> datetime:
    delay = min(BASE_DELAY_SECONDS * (2 ** attempts), MAX_DELAY_SECONDS)
    return datetime.now(timezone.utc) + timedelta(seconds=delay)


async def publish_record(publisher: EventPublisher, record: OutboxRecord, prefix: str) -> list[str]:
    """Publish one change record on every topic it belongs to."""
    table = record.payload.get("table", "")
    row = record.payload.get("record") or {}
    topics = topics_for_change(prefix, table, row)
    for topic in topics:
        await publisher.publish(topic, record.event_type, record.payload)
    return topics


async def run_outbox_worker() -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    publisher = RedisPubSubPublisher(redis)

    logger.info(
        "Outbox worker started (poll=%.1fs, batch=%d, max_attempts=%d)",
        settings.OUTBOX_POLL_INTERVAL,
        settings.OUTBOX_BATCH_SIZE,
        settings.OUTBOX_MAX_ATTEMPTS,
    )

    try:
        while True:
            try:
                await _process_batch(publisher)
            except Exception:
                logger.exception("Outbox worker loop error")
            await asyncio.sleep(settings.OUTBOX_POLL_INTERVAL)
    finally:
        await redis.aclose()


async def _process_batch(publisher: EventPublisher) -> None:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        batch = await uow.outbox.fetch_pending(settings.OUTBOX_BATCH_SIZE)
        if not batch:
            return

        sent_ids: list[int] = []
        for record in batch:
            if record.attempts >= settings.OUTBOX_MAX_ATTEMPTS:
                logger.warning("Outbox record %d exceeded max attempts, skipping", record.id)
                continue
            try:
                await publish_record(publisher, record, settings.REALTIME_TOPIC_PREFIX)
                sent_ids.append(record.id)
            except Exception:
                logger.exception("Failed to publish outbox record %d", record.id)
                await uow.outbox.mark_failed(record.id, _calc_backoff(record.attempts))

        if sent_ids:
            await uow.outbox.mark_sent(sent_ids)

        await uow.commit()
        if sent_ids:
            logger.info("Published %d outbox records", len(sent_ids))


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(run_outbox_worker())


if __name__ == "__main__":
    main()
