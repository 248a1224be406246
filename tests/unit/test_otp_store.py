from datetime import timedelta

import pytest

from tenantkit.domain.entities import OtpRecord


@pytest.mark.asyncio
async def test_create_stamps_created_at_and_returns_stored_record(store, repo, clock):
    record = await store.create("+15551230001", "123456", clock.now + timedelta(minutes=5))

    assert record.id is not None
    assert record.created_at == clock.now
    assert repo.rows[record.id] == record


@pytest.mark.asyncio
async def test_find_latest_prefers_newest_and_matches_exactly(store, clock):
    expires = clock.now + timedelta(minutes=5)
    await store.create("a@example.com", "000111", expires)
    clock.advance(10)
    newest = await store.create("a@example.com", "000111", expires)

    assert await store.find_latest_valid("a@example.com", "000111") == newest
    assert await store.find_latest_valid("A@example.com", "000111") is None
    assert await store.find_latest_valid("a@example.com", "000112") is None


@pytest.mark.asyncio
async def test_find_latest_returns_expired_records_too(store, clock):
    record = await store.create("a@example.com", "000111", clock.now)
    clock.advance(60)
    assert await store.find_latest_valid("a@example.com", "000111") == record


@pytest.mark.asyncio
async def test_delete_is_delete_if_present(store, clock):
    record = await store.create("a@example.com", "000111", clock.now)

    assert await store.delete(record) is True
    assert await store.delete(record) is False


@pytest.mark.asyncio
async def test_delete_of_unsaved_record_is_a_noop(store, clock):
    unsaved = OtpRecord("a@example.com", "000111", clock.now, clock.now)
    assert await store.delete(unsaved) is False


@pytest.mark.asyncio
async def test_delete_expired_uses_inclusive_boundary(store, repo, clock):
    await store.create("a", "1", clock.now - timedelta(seconds=1))
    await store.create("b", "2", clock.now)
    keep = await store.create("c", "3", clock.now + timedelta(seconds=1))

    assert await store.delete_expired(clock.now) == 2
    assert list(repo.rows.values()) == [keep]
