"""
Participation request ledger and capacity accounting, exercised at the
service layer against a real (SQLite) session.
"""

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.models.event import Event, EventState
from ewm.models.request import ParticipationRequest, RequestStatus
from ewm.services import capacity_service, request_service
from ewm.services.capacity_service import ConcurrentModification


async def _confirmed_counter(db: AsyncSession, event_id: int) -> int:
    event = await db.get(Event, event_id, populate_existing=True)
    return event.confirmed_requests


async def _assert_counter_matches_ledger(db: AsyncSession, event_id: int):
    assert await _confirmed_counter(db, event_id) == await capacity_service.count_confirmed(db, event_id)


@pytest.mark.asyncio
async def test_create_without_moderation_confirms(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=5, request_moderation=False)
    user_id = await make_user()

    request = await request_service.create_request(db_session, user_id, event_id)

    assert request.status == RequestStatus.CONFIRMED
    assert await _confirmed_counter(db_session, event_id) == 1
    await _assert_counter_matches_ledger(db_session, event_id)


@pytest.mark.asyncio
async def test_create_with_unlimited_capacity_confirms(db_session, make_user, make_event):
    """Moderation is irrelevant when participant_limit is 0."""
    event_id = await make_event(participant_limit=0, request_moderation=True)
    user_id = await make_user()

    request = await request_service.create_request(db_session, user_id, event_id)

    assert request.status == RequestStatus.CONFIRMED
    assert await _confirmed_counter(db_session, event_id) == 1


@pytest.mark.asyncio
async def test_create_with_moderation_is_pending(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=5, request_moderation=True)
    user_id = await make_user()

    request = await request_service.create_request(db_session, user_id, event_id)

    assert request.status == RequestStatus.PENDING
    assert await _confirmed_counter(db_session, event_id) == 0


@pytest.mark.asyncio
async def test_create_at_full_capacity_conflicts_and_changes_nothing(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=1, request_moderation=False)
    first, second = await make_user(), await make_user()
    await request_service.create_request(db_session, first, event_id)

    with pytest.raises(ConflictError):
        await request_service.create_request(db_session, second, event_id)

    assert await _confirmed_counter(db_session, event_id) == 1
    rows = (await db_session.execute(
        select(ParticipationRequest).where(ParticipationRequest.event_id == event_id)
    )).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_create_duplicate_conflicts(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=5)
    user_id = await make_user()
    await request_service.create_request(db_session, user_id, event_id)

    with pytest.raises(ConflictError):
        await request_service.create_request(db_session, user_id, event_id)


@pytest.mark.asyncio
async def test_create_again_after_cancel_is_allowed(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=5)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)
    await request_service.cancel_request(db_session, user_id, request.id)

    again = await request_service.create_request(db_session, user_id, event_id)
    assert again.id != request.id
    assert again.status == RequestStatus.PENDING


@pytest.mark.asyncio
async def test_initiator_cannot_request_own_event(db_session, initiator_id, make_event):
    event_id = await make_event()

    with pytest.raises(ConflictError):
        await request_service.create_request(db_session, initiator_id, event_id)


@pytest.mark.asyncio
async def test_create_for_unpublished_event_conflicts(db_session, make_user, make_event):
    event_id = await make_event(state=EventState.PENDING)
    user_id = await make_user()

    with pytest.raises(ConflictError):
        await request_service.create_request(db_session, user_id, event_id)


@pytest.mark.asyncio
async def test_create_unknown_user_or_event_not_found(db_session, make_user, make_event):
    event_id = await make_event()
    user_id = await make_user()

    with pytest.raises(NotFoundError):
        await request_service.create_request(db_session, 9999, event_id)
    with pytest.raises(NotFoundError):
        await request_service.create_request(db_session, user_id, 9999)


@pytest.mark.asyncio
async def test_cancel_confirmed_releases_slot(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=2, request_moderation=False)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)
    assert await _confirmed_counter(db_session, event_id) == 1

    canceled = await request_service.cancel_request(db_session, user_id, request.id)

    assert canceled.status == RequestStatus.CANCELED
    assert await _confirmed_counter(db_session, event_id) == 0
    await _assert_counter_matches_ledger(db_session, event_id)


@pytest.mark.asyncio
async def test_cancel_pending_leaves_counter(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=2, confirmed_requests=0)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)

    await request_service.cancel_request(db_session, user_id, request.id)

    assert await _confirmed_counter(db_session, event_id) == 0


@pytest.mark.asyncio
async def test_cancel_twice_is_idempotent(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=2, request_moderation=False)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)

    await request_service.cancel_request(db_session, user_id, request.id)
    again = await request_service.cancel_request(db_session, user_id, request.id)

    assert again.status == RequestStatus.CANCELED
    assert await _confirmed_counter(db_session, event_id) == 0


@pytest.mark.asyncio
async def test_cancel_someone_elses_request_not_found(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=2)
    owner, other = await make_user(), await make_user()
    request = await request_service.create_request(db_session, owner, event_id)

    with pytest.raises(NotFoundError):
        await request_service.cancel_request(db_session, other, request.id)


@pytest.mark.asyncio
async def test_cancel_rejected_conflicts(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=2)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)
    await request_service.moderate_requests(
        db_session, initiator_id, event_id, [request.id], RequestStatus.REJECTED
    )

    with pytest.raises(ConflictError):
        await request_service.cancel_request(db_session, user_id, request.id)


@pytest.mark.asyncio
async def test_batch_confirm_beyond_capacity_confirms_remainder_in_order(
    db_session, initiator_id, make_user, make_event
):
    """Limit 2 with 1 confirmed: of three pending requests only the first fits."""
    event_id = await make_event(participant_limit=2, request_moderation=True)
    early = await make_user()
    early_request = await request_service.create_request(db_session, early, event_id)
    await request_service.moderate_requests(
        db_session, initiator_id, event_id, [early_request.id], RequestStatus.CONFIRMED
    )

    ids = []
    for _ in range(3):
        user_id = await make_user()
        ids.append((await request_service.create_request(db_session, user_id, event_id)).id)

    confirmed, rejected = await request_service.moderate_requests(
        db_session, initiator_id, event_id, ids, RequestStatus.CONFIRMED
    )

    assert [r.id for r in confirmed] == [ids[0]]
    assert [r.id for r in rejected] == [ids[1], ids[2]]
    assert all(r.status == RequestStatus.CONFIRMED for r in confirmed)
    assert all(r.status == RequestStatus.REJECTED for r in rejected)
    assert await _confirmed_counter(db_session, event_id) == 2
    await _assert_counter_matches_ledger(db_session, event_id)


@pytest.mark.asyncio
async def test_batch_confirm_follows_input_order(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=1)
    ids = []
    for _ in range(2):
        user_id = await make_user()
        ids.append((await request_service.create_request(db_session, user_id, event_id)).id)

    confirmed, rejected = await request_service.moderate_requests(
        db_session, initiator_id, event_id, list(reversed(ids)), RequestStatus.CONFIRMED
    )

    assert [r.id for r in confirmed] == [ids[1]]
    assert [r.id for r in rejected] == [ids[0]]


@pytest.mark.asyncio
async def test_batch_reject_leaves_counter(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=3)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)

    confirmed, rejected = await request_service.moderate_requests(
        db_session, initiator_id, event_id, [request.id], RequestStatus.REJECTED
    )

    assert confirmed == []
    assert [r.id for r in rejected] == [request.id]
    assert await _confirmed_counter(db_session, event_id) == 0


@pytest.mark.asyncio
async def test_batch_confirm_when_full_conflicts(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=1)
    first, second = await make_user(), await make_user()
    r1 = await request_service.create_request(db_session, first, event_id)
    r2 = await request_service.create_request(db_session, second, event_id)
    await request_service.moderate_requests(db_session, initiator_id, event_id, [r1.id], RequestStatus.CONFIRMED)

    with pytest.raises(ConflictError):
        await request_service.moderate_requests(
            db_session, initiator_id, event_id, [r2.id], RequestStatus.CONFIRMED
        )


@pytest.mark.asyncio
async def test_batch_non_pending_request_conflicts(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=3)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)
    await request_service.moderate_requests(
        db_session, initiator_id, event_id, [request.id], RequestStatus.CONFIRMED
    )

    with pytest.raises(ConflictError):
        await request_service.moderate_requests(
            db_session, initiator_id, event_id, [request.id], RequestStatus.REJECTED
        )


@pytest.mark.asyncio
async def test_batch_request_of_other_event_conflicts(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=3)
    other_event_id = await make_event(participant_limit=3)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, other_event_id)

    with pytest.raises(ConflictError):
        await request_service.moderate_requests(
            db_session, initiator_id, event_id, [request.id], RequestStatus.CONFIRMED
        )

    stored = await db_session.get(ParticipationRequest, request.id, populate_existing=True)
    assert stored.status == RequestStatus.PENDING
    assert await _confirmed_counter(db_session, event_id) == 0


@pytest.mark.asyncio
async def test_batch_by_non_initiator_not_found(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=3)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)

    with pytest.raises(NotFoundError):
        await request_service.moderate_requests(
            db_session, user_id, event_id, [request.id], RequestStatus.CONFIRMED
        )


@pytest.mark.asyncio
async def test_batch_unknown_request_not_found(db_session, initiator_id, make_event):
    event_id = await make_event(participant_limit=3)

    with pytest.raises(NotFoundError):
        await request_service.moderate_requests(
            db_session, initiator_id, event_id, [4242], RequestStatus.CONFIRMED
        )


@pytest.mark.asyncio
async def test_batch_without_moderation_conflicts(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=0)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)

    with pytest.raises(ConflictError):
        await request_service.moderate_requests(
            db_session, initiator_id, event_id, [request.id], RequestStatus.REJECTED
        )


@pytest.mark.asyncio
async def test_counter_matches_ledger_after_mixed_sequence(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=3)
    users = [await make_user() for _ in range(5)]
    requests = [await request_service.create_request(db_session, u, event_id) for u in users]

    await request_service.moderate_requests(
        db_session, initiator_id, event_id, [r.id for r in requests[:2]], RequestStatus.CONFIRMED
    )
    await request_service.cancel_request(db_session, users[0], requests[0].id)
    await request_service.cancel_request(db_session, users[2], requests[2].id)
    await request_service.moderate_requests(
        db_session, initiator_id, event_id, [requests[3].id, requests[4].id], RequestStatus.CONFIRMED
    )

    assert await _confirmed_counter(db_session, event_id) == 3
    await _assert_counter_matches_ledger(db_session, event_id)


@pytest.mark.asyncio
async def test_list_requests(db_session, initiator_id, make_user, make_event):
    event_id = await make_event(participant_limit=3)
    user_id = await make_user()
    request = await request_service.create_request(db_session, user_id, event_id)

    mine = await request_service.get_user_requests(db_session, user_id)
    assert [r.id for r in mine] == [request.id]

    for_event = await request_service.get_event_requests(db_session, initiator_id, event_id)
    assert [r.id for r in for_event] == [request.id]

    with pytest.raises(NotFoundError):
        await request_service.get_event_requests(db_session, user_id, event_id)
    with pytest.raises(NotFoundError):
        await request_service.get_user_requests(db_session, 9999)


# --- Capacity accounting ---

@pytest.mark.asyncio
async def test_stale_version_increment_fails(db_session, make_event):
    event_id = await make_event(participant_limit=5)
    event = await db_session.get(Event, event_id)
    stale_version = event.version

    # Another writer bumps the version behind the session's back
    await db_session.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )
    assert event.version == stale_version

    with pytest.raises(ConcurrentModification):
        await capacity_service.increment_confirmed(db_session, event, 1)


@pytest.mark.asyncio
async def test_unversioned_increment_ignores_concurrent_bump(db_session, make_event):
    """Creates only need the capacity bound, so a bumped version is not a miss."""
    event_id = await make_event(participant_limit=0)
    event = await db_session.get(Event, event_id)

    await db_session.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )

    await capacity_service.increment_confirmed(db_session, event, 1, check_version=False)

    assert await _confirmed_counter(db_session, event_id) == 1


@pytest.mark.asyncio
async def test_unversioned_increment_still_respects_limit(db_session, make_event):
    event_id = await make_event(participant_limit=1, confirmed_requests=1)
    event = await db_session.get(Event, event_id)

    with pytest.raises(ConcurrentModification):
        await capacity_service.increment_confirmed(db_session, event, 1, check_version=False)


@pytest.mark.asyncio
async def test_increment_beyond_limit_fails(db_session, make_event):
    event_id = await make_event(participant_limit=1, confirmed_requests=1)
    event = await db_session.get(Event, event_id)

    with pytest.raises(ConcurrentModification):
        await capacity_service.increment_confirmed(db_session, event, 1)


@pytest.mark.asyncio
async def test_increment_bumps_version(db_session, make_event):
    event_id = await make_event(participant_limit=5)
    event = await db_session.get(Event, event_id)
    version = event.version

    await capacity_service.increment_confirmed(db_session, event, 2)

    assert event.confirmed_requests == 2
    assert event.version == version + 1


@pytest.mark.asyncio
async def test_run_with_retry_reruns_then_succeeds(db_session):
    calls = []

    async def attempt():
        calls.append(1)
        if len(calls) < 2:
            raise ConcurrentModification("changed")
        return "ok"

    assert await capacity_service.run_with_retry(db_session, "test", attempt) == "ok"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_run_with_retry_gives_up_with_conflict(db_session, monkeypatch):
    calls = []
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(capacity_service.asyncio, "sleep", fake_sleep)

    async def attempt():
        calls.append(1)
        raise ConcurrentModification("always changed")

    with pytest.raises(ConflictError):
        await capacity_service.run_with_retry(db_session, "test", attempt)
    assert len(calls) == 3
    assert len(delays) == 2
    assert 0 <= delays[0] <= 0.05
    assert 0 <= delays[1] <= 0.1


@pytest.mark.asyncio
async def test_reconcile_fixes_drift(db_session, make_user, make_event):
    event_id = await make_event(participant_limit=5, request_moderation=False)
    user_id = await make_user()
    await request_service.create_request(db_session, user_id, event_id)

    # Simulate drift
    await db_session.execute(update(Event).where(Event.id == event_id).values(confirmed_requests=3))

    report = await capacity_service.reconcile(db_session, event_id)

    assert report == {"event_id": event_id, "recorded": 3, "actual": 1, "corrected": True}
    assert await _confirmed_counter(db_session, event_id) == 1


@pytest.mark.asyncio
async def test_reconcile_consistent_counter(db_session, make_event):
    event_id = await make_event(participant_limit=5)

    report = await capacity_service.reconcile(db_session, event_id)

    assert report["corrected"] is False
    assert report["recorded"] == report["actual"] == 0


@pytest.mark.asyncio
async def test_reconcile_unknown_event(db_session):
    with pytest.raises(NotFoundError):
        await capacity_service.reconcile(db_session, 9999)
