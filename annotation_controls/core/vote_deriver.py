"""
Vote Deriver

Computes like/dislike tallies and the viewer's current vote from an
annotation snapshot. Nothing here performs I/O or mutates its inputs, so
derivation can run on every read.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from annotation_controls.core.vote_tags import (
    DISLIKE,
    INLINE_SCHEME,
    LIKE,
    NO_VOTE,
    REPLY_SCHEME,
    parse_inline_vote,
    parse_reply_vote,
)


@dataclass(frozen=True)
class VoteState:
    """Derived vote tallies for one annotation as seen by one viewer."""
    like_count: int = 0
    dislike_count: int = 0
    viewer_vote: str = NO_VOTE
    # Id of the viewer's vote-reply (reply scheme only)
    viewer_vote_id: Optional[str] = None

    def to_dict(self):
        return {
            "like_count": self.like_count,
            "dislike_count": self.dislike_count,
            "viewer_vote": self.viewer_vote,
        }


EMPTY_VOTE_STATE = VoteState()


def _references(annotation) -> List[str]:
    return list(getattr(annotation, "references", None) or [])


def _tags(annotation) -> List[str]:
    return list(getattr(annotation, "tags", None) or [])


def reply_vote_type(annotation) -> Optional[str]:
    """Vote type carried by a reply-scheme vote annotation, first marker wins."""
    for tag in _tags(annotation):
        vote_type = parse_reply_vote(tag)
        if vote_type:
            return vote_type
    return None


def has_vote_tag(annotation) -> bool:
    """Whether the annotation is itself a vote (carries a reply-scheme marker)."""
    return reply_vote_type(annotation) is not None


def is_vote_reply(annotation) -> bool:
    return bool(_references(annotation)) and has_vote_tag(annotation)


def is_eligible_vote_target(annotation) -> bool:
    """Replies and votes cannot be voted on."""
    return not _references(annotation) and not has_vote_tag(annotation)


def vote_replies_for(target, candidates: Optional[Iterable]) -> list:
    """Vote-replies whose last reference is ``target``."""
    target_id = getattr(target, "id", None)
    if target_id is None:
        return []
    return [
        candidate for candidate in candidates or []
        if _references(candidate)
        and _references(candidate)[-1] == target_id
        and has_vote_tag(candidate)
    ]


def _resolve_viewer_vote(viewer_types) -> str:
    # A viewer holding both a like and a dislike counts as liking
    if LIKE in viewer_types:
        return LIKE
    if DISLIKE in viewer_types:
        return DISLIKE
    return NO_VOTE


def derive_inline(target, viewer_id: Optional[str]) -> VoteState:
    like_count = dislike_count = 0
    viewer_types = set()

    for tag in _tags(target):
        vote = parse_inline_vote(tag)
        if vote is None:
            continue
        if vote.vote_type == LIKE:
            like_count += 1
        else:
            dislike_count += 1
        if viewer_id and vote.userid == viewer_id:
            viewer_types.add(vote.vote_type)

    return VoteState(like_count, dislike_count, _resolve_viewer_vote(viewer_types))


def derive_reply(target, candidates: Optional[Iterable], viewer_id: Optional[str]) -> VoteState:
    like_count = dislike_count = 0
    viewer_reply_ids = {}

    for reply in vote_replies_for(target, candidates):
        vote_type = reply_vote_type(reply)
        if vote_type == LIKE:
            like_count += 1
        else:
            dislike_count += 1
        if viewer_id and getattr(reply, "user", None) == viewer_id:
            viewer_reply_ids.setdefault(vote_type, getattr(reply, "id", None))

    viewer_vote = _resolve_viewer_vote(viewer_reply_ids)
    return VoteState(like_count, dislike_count, viewer_vote, viewer_reply_ids.get(viewer_vote))


def derive(target, candidate_annotations: Optional[Iterable], viewer_id: Optional[str],
           scheme: str = INLINE_SCHEME) -> VoteState:
    """
    Derive the vote state of ``target`` for ``viewer_id``.

    Args:
        target: Annotation being voted on
        candidate_annotations: Loaded annotations that may include vote-replies
            to ``target`` (only read by the reply scheme)
        viewer_id: Account id of the viewer, or None when logged out
        scheme: ``inline`` or ``reply``

    Returns:
        VoteState; the empty state for replies and votes
    """
    if not is_eligible_vote_target(target):
        return EMPTY_VOTE_STATE
    if scheme == REPLY_SCHEME:
        return derive_reply(target, candidate_annotations, viewer_id)
    if scheme == INLINE_SCHEME:
        return derive_inline(target, viewer_id)
    raise ValueError(f"Unknown vote scheme: {scheme!r}")
