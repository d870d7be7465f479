from __future__ import annotations

import pytest

from idea_pilot.application.dto.message import PageDTO
from idea_pilot.application.exceptions import ValidationError
from idea_pilot.services import community_service, profile_service
from tests.conftest import ALICE_ID, BOB_ID, FakeUoW, make_community_message, make_profile


@pytest.mark.asyncio
async def test_list_joins_authors():
    uow = FakeUoW()
    uow.profiles.add(make_profile(ALICE_ID, "Alice"))
    uow.community._messages.extend([
        make_community_message(user_id=ALICE_ID, seconds=1),
        make_community_message(user_id=BOB_ID, seconds=2),
    ])

    msgs = await community_service.list_community_messages(PageDTO(limit=50), uow)

    assert [m.user_id for m in msgs] == [BOB_ID, ALICE_ID]
    assert msgs[0].author is None
    assert msgs[1].author is not None and msgs[1].author.display_name == "Alice"


@pytest.mark.asyncio
async def test_list_empty():
    assert await community_service.list_community_messages(PageDTO(), FakeUoW()) == []


@pytest.mark.asyncio
async def test_send_community_message(alice):
    uow = FakeUoW()
    uow.profiles.add(make_profile(ALICE_ID, "Alice"))

    msg = await community_service.send_community_message(alice, " hi all ", uow)

    assert msg.content == "hi all"
    assert msg.author is not None
    assert uow._committed is True
    assert uow.outbox._records[0]["payload"]["table"] == "community_messages"
    assert uow.outbox._records[0]["payload"]["record"]["user_id"] == str(ALICE_ID)


@pytest.mark.asyncio
async def test_send_without_profile_still_stored(alice):
    uow = FakeUoW()

    msg = await community_service.send_community_message(alice, "hi", uow)

    assert msg.author is None
    assert len(uow.community._messages) == 1


@pytest.mark.asyncio
async def test_send_blank_rejected(alice):
    with pytest.raises(ValidationError):
        await community_service.send_community_message(alice, "\n", FakeUoW())


@pytest.mark.asyncio
async def test_list_users_by_name():
    uow = FakeUoW()
    uow.profiles.add(make_profile(BOB_ID, "Bob"), make_profile(ALICE_ID, "Alice"))

    users = await profile_service.list_users(uow)

    assert [u.full_name for u in users] == ["Alice", "Bob"]
