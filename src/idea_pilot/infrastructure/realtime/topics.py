"""Redis Pub/Sub topic names of the change feed."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from idea_pilot.domain.value_objects.enums import ChangeTable


def change_topic(prefix: str, table: str, conversation_id: UUID | str | None = None) -> str:
    if conversation_id is None:
        return f"{prefix}:changes:{table}"
    return f"{prefix}:changes:{table}:{conversation_id}"


def broadcast_topic(prefix: str, channel_name: str) -> str:
    return f"{prefix}:broadcast:{channel_name}"


def topics_for_change(prefix: str, table: str, record: dict[str, Any]) -> list[str]:
    """Every topic a row change is published on.

    Private messages go to the table topic and to their conversation's topic.
    """
    topics = [change_topic(prefix, table)]
    if table == ChangeTable.PRIVATE_MESSAGES and record.get("conversation_id"):
        topics.append(change_topic(prefix, table, record["conversation_id"]))
    return topics
