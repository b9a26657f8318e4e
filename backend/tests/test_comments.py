"""
Tests for event comments.
"""

import pytest
from httpx import AsyncClient

from ewm.models.event import EventState


@pytest.mark.asyncio
async def test_comment_lifecycle(client: AsyncClient, make_user, make_event):
    event_id = await make_event()
    author = await make_user("Grace")

    first = await client.post(f"/users/{author}/events/{event_id}/comments", json={"text": "See you there"})
    assert first.status_code == 201
    assert first.json()["authorName"] == "Grace"
    assert first.json()["eventId"] == event_id

    second = await client.post(f"/users/{author}/events/{event_id}/comments", json={"text": "Bringing friends"})

    listed = await client.get(f"/events/{event_id}/comments")
    assert listed.status_code == 200
    assert [c["id"] for c in listed.json()] == [second.json()["id"], first.json()["id"]]

    deleted = await client.delete(f"/users/{author}/comments/{first.json()['id']}")
    assert deleted.status_code == 204
    assert len((await client.get(f"/events/{event_id}/comments")).json()) == 1


@pytest.mark.asyncio
async def test_comment_on_unpublished_event(client: AsyncClient, make_user, make_event):
    event_id = await make_event(state=EventState.PENDING)
    author = await make_user()

    response = await client.post(f"/users/{author}/events/{event_id}/comments", json={"text": "Hello"})

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_only_author_deletes_comment(client: AsyncClient, make_user, make_event):
    event_id = await make_event()
    author, other = await make_user(), await make_user()
    comment_id = (
        await client.post(f"/users/{author}/events/{event_id}/comments", json={"text": "Mine"})
    ).json()["id"]

    response = await client.delete(f"/users/{other}/comments/{comment_id}")

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_empty_comment_rejected(client: AsyncClient, make_user, make_event):
    event_id = await make_event()
    author = await make_user()

    response = await client.post(f"/users/{author}/events/{event_id}/comments", json={"text": ""})

    assert response.status_code == 400
