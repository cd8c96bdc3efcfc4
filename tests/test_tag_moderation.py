"""Tests for the story-tag moderation workflow."""
import pytest
from sqlalchemy import select, func

from src.db.tables import StoryRow, StoryTagRow, TagRow
from src.services.tag_moderation import AttachOutcome, TagModerationService, TagNotPending
from tests.conftest import get_test_session


async def _pivot_rows(story_id):
    async with get_test_session() as session:
        result = await session.execute(select(StoryTagRow).where(StoryTagRow.story_id == story_id))
        return list(result.scalars().all())


# ── Service ─────────────────────────────────────────────────────────────────

async def test_request_creates_pending_row(story, tag):
    async with get_test_session() as session:
        outcome = await TagModerationService(session).request_attach(story, tag)
    assert outcome is AttachOutcome.REQUESTED
    rows = await _pivot_rows(story.id)
    assert [(r.tag_id, r.status) for r in rows] == [(tag.id, "pending")]


async def test_repeat_request_is_noop_while_pending(story, tag):
    async with get_test_session() as session:
        service = TagModerationService(session)
        await service.request_attach(story, tag)
        outcome = await service.request_attach(story, tag)
    assert outcome is AttachOutcome.ALREADY_PENDING
    assert len(await _pivot_rows(story.id)) == 1


async def test_request_after_approval_does_not_demote(story, tag):
    async with get_test_session() as session:
        service = TagModerationService(session)
        await service.request_attach(story, tag)
        await service.approve(story, tag)
        outcome = await service.request_attach(story, tag)
    assert outcome is AttachOutcome.ALREADY_APPROVED
    rows = await _pivot_rows(story.id)
    assert [r.status for r in rows] == ["approved"]


async def test_approve_requires_pending(story, tag):
    async with get_test_session() as session:
        with pytest.raises(TagNotPending):
            await TagModerationService(session).approve(story, tag)


async def test_approve_twice_fails_second_time(story, tag):
    async with get_test_session() as session:
        service = TagModerationService(session)
        await service.request_attach(story, tag)
        await service.approve(story, tag)
        with pytest.raises(TagNotPending):
            await service.approve(story, tag)


async def test_reject_removes_row_and_allows_new_request(story, tag):
    async with get_test_session() as session:
        service = TagModerationService(session)
        await service.request_attach(story, tag)
        await service.reject(story, tag)
        assert await service.status_of(story.id, tag.id) is None
        outcome = await service.request_attach(story, tag)
    assert outcome is AttachOutcome.REQUESTED


async def test_reject_approved_tag_fails(story, tag):
    async with get_test_session() as session:
        service = TagModerationService(session)
        await service.request_attach(story, tag)
        await service.approve(story, tag)
        with pytest.raises(TagNotPending):
            await service.reject(story, tag)
        assert await service.status_of(story.id, tag.id) == "approved"


async def test_list_pending_excludes_approved(story, tag):
    async with get_test_session() as session:
        other = TagRow(name="Knights")
        session.add(other)
        await session.commit()

        service = TagModerationService(session)
        await service.request_attach(story, tag)
        await service.request_attach(story, other)
        await service.approve(story, tag)
    async with get_test_session() as session:
        page = await TagModerationService(session).list_pending(story)
    assert [row.tag.name for row in page.items] == ["Knights"]
    assert page.total == 1


async def test_pending_tag_count_counts_distinct_tags(story, tag, category):
    async with get_test_session() as session:
        second = StoryRow(title="Spring Thaw", category_id=category.id)
        session.add(second)
        await session.commit()

        service = TagModerationService(session)
        await service.request_attach(story, tag)
        await service.request_attach(second, tag)
        assert await service.pending_tag_count() == 1
        assert await service.usage_count(tag.id) == 2


async def test_composite_key_rejects_duplicate_pair(story, tag):
    from sqlalchemy.exc import IntegrityError
    async with get_test_session() as session:
        session.add(StoryTagRow(story_id=story.id, tag_id=tag.id, status="pending"))
        await session.commit()
    async with get_test_session() as session:
        session.add(StoryTagRow(story_id=story.id, tag_id=tag.id, status="pending"))
        with pytest.raises(IntegrityError):
            await session.commit()
        await session.rollback()
        count = (await session.execute(select(func.count()).select_from(StoryTagRow))).scalar()
    assert count == 1


# ── API ─────────────────────────────────────────────────────────────────────

async def test_request_tag_endpoint(client, story, tag):
    resp = await client.post(f"/stories/{story.id}/tags", json={"tag_id": tag.id})
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Tag addition request submitted for moderation."
    assert body["status"] == "requested"

    again = await client.post(f"/stories/{story.id}/tags", json={"tag_id": tag.id})
    assert again.json()["message"] == "Tag is already attached or pending."
    assert again.json()["status"] == "already_pending"


async def test_request_tag_unknown_tag_is_422(client, story):
    resp = await client.post(f"/stories/{story.id}/tags", json={"tag_id": 9999})
    assert resp.status_code == 422
    assert resp.json()["errors"]["tag_id"] == ["The selected tag id is invalid."]


async def test_request_tag_unknown_story_is_404(client, tag):
    resp = await client.post("/stories/no-such-story/tags", json={"tag_id": tag.id})
    assert resp.status_code == 404


async def test_pending_tag_hidden_from_story_until_approved(client, story, tag, moderator_headers):
    await client.post(f"/stories/{story.id}/tags", json={"tag_id": tag.id})
    resp = await client.get(f"/stories/{story.id}")
    assert resp.json()["data"]["tags"] == []

    approve = await client.post(
        f"/moderator/stories/{story.id}/tags/{tag.id}/approve", headers=moderator_headers,
    )
    assert approve.status_code == 200
    assert approve.json()["message"] == "Tag 'Dragons' approved for story 'The Long Winter'."

    resp = await client.get(f"/stories/{story.id}")
    assert [t["name"] for t in resp.json()["data"]["tags"]] == ["Dragons"]


async def test_reject_endpoint(client, story, tag, moderator_headers):
    await client.post(f"/stories/{story.id}/tags", json={"tag_id": tag.id})
    resp = await client.delete(
        f"/moderator/stories/{story.id}/tags/{tag.id}/reject", headers=moderator_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Tag 'Dragons' rejected for story 'The Long Winter'."
    assert await _pivot_rows(story.id) == []


async def test_approve_not_pending_is_404(client, story, tag, moderator_headers):
    resp = await client.post(
        f"/moderator/stories/{story.id}/tags/{tag.id}/approve", headers=moderator_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Tag is not pending for this story"


async def test_pending_tags_endpoint(client, story, tag, moderator_headers):
    await client.post(f"/stories/{story.id}/tags", json={"tag_id": tag.id})
    resp = await client.get(f"/moderator/stories/{story.id}/pending-tags", headers=moderator_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["meta"]["total"] == 1
    entry = body["data"][0]
    assert entry["tag"]["name"] == "Dragons"
    assert entry["status"] == "pending"
    assert entry["story"]["id"] == story.id


# ── Concurrent requests ─────────────────────────────────────────────────────

async def _seed_pivot(story_id, tag_id, status="pending"):
    async with get_test_session() as session:
        session.add(StoryTagRow(story_id=story_id, tag_id=tag_id, status=status))
        await session.commit()


def _stale_first_check(monkeypatch, competing_status=None):
    """First status check reports the pair absent, as if another request
    inserted it between our check and our insert.

    With ``competing_status`` set, that other request's row is written
    during the stale check itself.
    """
    original = TagModerationService.status_of
    calls = []

    async def status_of(self, story_id, tag_id):
        calls.append((story_id, tag_id))
        if len(calls) == 1:
            if competing_status is not None:
                await _seed_pivot(story_id, tag_id, competing_status)
            return None
        return await original(self, story_id, tag_id)

    monkeypatch.setattr(TagModerationService, "status_of", status_of)
    return calls


async def test_lost_race_reports_already_pending(monkeypatch, story, tag):
    await _seed_pivot(story.id, tag.id)
    _stale_first_check(monkeypatch)
    async with get_test_session() as session:
        outcome = await TagModerationService(session).request_attach(story, tag)
    assert outcome is AttachOutcome.ALREADY_PENDING
    rows = await _pivot_rows(story.id)
    assert [(r.tag_id, r.status) for r in rows] == [(tag.id, "pending")]


async def test_lost_race_reports_already_approved(monkeypatch, story, tag):
    await _seed_pivot(story.id, tag.id, "approved")
    _stale_first_check(monkeypatch)
    async with get_test_session() as session:
        outcome = await TagModerationService(session).request_attach(story, tag)
    assert outcome is AttachOutcome.ALREADY_APPROVED
    rows = await _pivot_rows(story.id)
    assert [r.status for r in rows] == ["approved"]


async def test_lost_race_keeps_session_usable(monkeypatch, story, tag):
    await _seed_pivot(story.id, tag.id)
    _stale_first_check(monkeypatch)
    async with get_test_session() as session:
        loaded = await session.get(StoryRow, story.id)
        other = TagRow(name="Knights")
        session.add(other)
        await session.commit()

        service = TagModerationService(session)
        assert await service.request_attach(loaded, tag) is AttachOutcome.ALREADY_PENDING
        # Rows loaded before the failed insert are still readable
        assert loaded.title == "The Long Winter"
        assert await service.request_attach(loaded, other) is AttachOutcome.REQUESTED
    assert len(await _pivot_rows(story.id)) == 2


async def test_request_tag_endpoint_lost_race(client, monkeypatch, story, tag):
    await _seed_pivot(story.id, tag.id)
    _stale_first_check(monkeypatch)
    resp = await client.post(f"/stories/{story.id}/tags", json={"tag_id": tag.id})
    assert resp.status_code == 200
    assert resp.json()["status"] == "already_pending"
    assert len(await _pivot_rows(story.id)) == 1


async def test_update_story_with_tags_lost_race(client, monkeypatch, story, tag):
    async with get_test_session() as session:
        other = TagRow(name="Knights")
        session.add(other)
        await session.commit()
    await _seed_pivot(story.id, tag.id)
    _stale_first_check(monkeypatch)

    resp = await client.patch(f"/stories/{story.id}", json={"tags": [tag.id, other.id]})
    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == "The Long Winter"

    rows = await _pivot_rows(story.id)
    assert sorted((r.tag_id, r.status) for r in rows) == sorted(
        [(tag.id, "pending"), (other.id, "pending")]
    )


async def test_create_story_with_tags_lost_race(client, monkeypatch, category, tag):
    calls = _stale_first_check(monkeypatch, competing_status="pending")
    resp = await client.post("/stories", json={
        "title": "Ember and Ash",
        "genre": "Dark Fantasy",
        "length": 3400,
        "content": "The forge never cooled.",
        "description": "A smith's apprentice inherits a cursed hammer.",
        "category_id": category.id,
        "tags": [tag.id],
    })
    assert resp.status_code == 201
    story_id = resp.json()["data"]["id"]
    assert calls[0] == (story_id, tag.id)

    rows = await _pivot_rows(story_id)
    assert [(r.tag_id, r.status) for r in rows] == [(tag.id, "pending")]
