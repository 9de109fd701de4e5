"""
Unit Tests for the Vote Service

Vote orchestration against a real session, persistence failures and the
in-flight guard.
"""

import pytest
from unittest.mock import AsyncMock, patch

from annotation_controls.core.exceptions import PersistenceError, VoteInProgressError
from annotation_controls.core.vote_deriver import VoteState
from annotation_controls.models.annotation import Annotation
from annotation_controls.services.annotations_service import AnnotationsService
from annotation_controls.services.vote_service import VoteService, VoteTracker

BOB = "acct:bob@hypothes.is"


@pytest.fixture
def annotations_service(test_db):
    return AnnotationsService(test_db)


@pytest.fixture
def inline_votes(annotations_service, test_settings):
    return VoteService(annotations_service, test_settings, tracker=VoteTracker())


@pytest.fixture
def reply_votes(annotations_service, reply_settings):
    return VoteService(annotations_service, reply_settings, tracker=VoteTracker())


def _vote_replies(test_db):
    return [a for a in test_db.query(Annotation).all() if a.references]


class TestInlineVoteService:

    @pytest.mark.unit
    async def test_like_toggle_and_switch(self, inline_votes, saved_annotation, bob):
        outcome = await inline_votes.vote(saved_annotation, "like", bob)
        assert outcome.status == "applied"
        assert outcome.vote_state == VoteState(1, 0, "like")
        assert saved_annotation.tags[0] == "history"
        assert saved_annotation.tags[1].startswith(f"vote:like:{BOB}:")

        outcome = await inline_votes.vote(saved_annotation, "like", bob)
        assert outcome.vote_state == VoteState(0, 0, "none")
        assert saved_annotation.tags == ["history"]

        outcome = await inline_votes.vote(saved_annotation, "dislike", bob)
        assert outcome.vote_state == VoteState(0, 1, "dislike")

        outcome = await inline_votes.vote(saved_annotation, "like", bob)
        assert outcome.vote_state == VoteState(1, 0, "like")
        assert len(saved_annotation.tags) == 2

    @pytest.mark.unit
    async def test_anonymous_viewer_requires_login(self, inline_votes, saved_annotation, anonymous):
        outcome = await inline_votes.vote(saved_annotation, "like", anonymous)

        assert outcome.status == "requires_login"
        assert saved_annotation.tags == ["history"]

    @pytest.mark.unit
    async def test_reply_target_is_ignored(self, inline_votes, test_db, make_annotation, bob):
        reply = make_annotation(id="r1", references=["a0"])
        test_db.add(reply)
        test_db.commit()

        outcome = await inline_votes.vote(reply, "like", bob)

        assert outcome.status == "ignored"
        assert reply.tags == []

    @pytest.mark.unit
    async def test_failed_save_keeps_stored_tags(self, inline_votes, test_db, saved_annotation, bob):
        with patch.object(AnnotationsService, "save", AsyncMock(side_effect=PersistenceError("save", "down"))):
            outcome = await inline_votes.vote(saved_annotation, "like", bob)

        assert outcome.status == "failed"
        assert outcome.vote_state == VoteState(0, 0, "none")
        assert outcome.messages == [
            {"type": "error", "message": "Failed to like annotation", "visually_hidden": False}
        ]
        test_db.refresh(saved_annotation)
        assert saved_annotation.tags == ["history"]

    @pytest.mark.unit
    async def test_reentrant_vote_rejected(self, inline_votes, saved_annotation, bob):
        inline_votes.tracker.begin(saved_annotation.id)

        with pytest.raises(VoteInProgressError):
            await inline_votes.vote(saved_annotation, "like", bob)

        inline_votes.tracker.end(saved_annotation.id)
        outcome = await inline_votes.vote(saved_annotation, "like", bob)
        assert outcome.status == "applied"
        assert not inline_votes.tracker.is_in_flight(saved_annotation.id)

    @pytest.mark.unit
    async def test_guard_released_after_failure(self, inline_votes, saved_annotation, bob):
        with patch.object(AnnotationsService, "save", AsyncMock(side_effect=PersistenceError("save", "down"))):
            await inline_votes.vote(saved_annotation, "dislike", bob)

        assert not inline_votes.tracker.is_in_flight(saved_annotation.id)

    @pytest.mark.unit
    async def test_unknown_vote_type(self, inline_votes, saved_annotation, bob):
        with pytest.raises(ValueError):
            await inline_votes.vote(saved_annotation, "love", bob)


class TestReplyVoteService:

    @pytest.mark.unit
    async def test_vote_creates_and_removes_reply(self, reply_votes, test_db, saved_annotation, bob):
        outcome = await reply_votes.vote(saved_annotation, "like", bob)

        assert outcome.vote_state.like_count == 1
        assert outcome.vote_state.viewer_vote == "like"
        replies = _vote_replies(test_db)
        assert len(replies) == 1
        assert replies[0].user == BOB
        assert replies[0].tags == ["vote:like"]
        assert replies[0].references == [saved_annotation.id]
        assert saved_annotation.tags == ["history"]

        outcome = await reply_votes.vote(saved_annotation, "like", bob)

        assert outcome.vote_state == VoteState(0, 0, "none")
        assert _vote_replies(test_db) == []

    @pytest.mark.unit
    async def test_switch_deletes_before_creating(self, reply_votes, test_db, saved_annotation, bob):
        await reply_votes.vote(saved_annotation, "dislike", bob)
        old_reply_id = _vote_replies(test_db)[0].id

        calls = []
        service = reply_votes.annotations_service
        original_delete, original_save = service.delete, service.save

        async def tracking_delete(annotation):
            calls.append(("delete", annotation.id))
            return await original_delete(annotation)

        async def tracking_save(payload):
            calls.append(("save", payload["tags"]))
            return await original_save(payload)

        service.delete = tracking_delete
        service.save = tracking_save

        outcome = await reply_votes.vote(saved_annotation, "like", bob)

        assert calls == [("delete", old_reply_id), ("save", ["vote:like"])]
        assert outcome.vote_state.like_count == 1
        assert outcome.vote_state.dislike_count == 0
        assert [r.tags for r in _vote_replies(test_db)] == [["vote:like"]]
