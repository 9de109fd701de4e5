"""
Vote Mutator

Turns a vote click into a plan for the persistence layer. The mutator
never writes anything itself; executors carry out the returned plan.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from annotation_controls.core.permissions import shared_permissions
from annotation_controls.core.vote_deriver import VoteState, is_eligible_vote_target
from annotation_controls.core.vote_tags import (
    INLINE_SCHEME,
    NO_VOTE,
    REPLY_SCHEME,
    check_vote_type,
    format_inline_vote,
    format_reply_vote,
    parse_inline_vote,
)


class PlanKind(str, Enum):
    NO_OP = "no_op"
    REQUIRES_LOGIN = "requires_login"
    UPDATE_TAGS = "update_tags"
    CREATE_ANNOTATION = "create_annotation"
    DELETE_ANNOTATION = "delete_annotation"
    # Delete the existing vote-reply, then create the new one
    REPLACE_ANNOTATION = "replace_annotation"


@dataclass(frozen=True)
class MutationPlan:
    kind: PlanKind
    tags: Optional[List[str]] = None
    payload: Optional[Dict[str, Any]] = field(default=None, compare=False)
    annotation_id: Optional[str] = None

    @classmethod
    def no_op(cls) -> "MutationPlan":
        return cls(PlanKind.NO_OP)

    @classmethod
    def requires_login(cls) -> "MutationPlan":
        return cls(PlanKind.REQUIRES_LOGIN)

    @property
    def is_no_op(self) -> bool:
        return self.kind in (PlanKind.NO_OP, PlanKind.REQUIRES_LOGIN)


def without_viewer_votes(tags: Optional[List[str]], viewer_id: str) -> List[str]:
    """Copy of ``tags`` with every inline marker cast by ``viewer_id`` removed."""
    kept = []
    for tag in tags or []:
        vote = parse_inline_vote(tag)
        if vote is not None and vote.userid == viewer_id:
            continue
        kept.append(tag)
    return kept


def vote_reply_payload(target, vote_type: str, viewer_id: str) -> Dict[str, Any]:
    """Payload for a reply annotation that records one vote on ``target``."""
    references = list(getattr(target, "references", None) or [])
    group = getattr(target, "group", None)
    return {
        "user": viewer_id,
        "group": group,
        "uri": getattr(target, "uri", None),
        "target": getattr(target, "target", None),
        "references": references + [target.id],
        "tags": [format_reply_vote(vote_type)],
        "text": "",
        "permissions": shared_permissions(viewer_id, group).to_dict(),
    }


def _plan_inline(target, state: VoteState, requested_type: str, viewer_id: str,
                 now: Optional[int]) -> MutationPlan:
    tags = without_viewer_votes(getattr(target, "tags", None), viewer_id)
    if state.viewer_vote != requested_type:
        timestamp = int(time.time()) if now is None else int(now)
        tags.append(format_inline_vote(requested_type, viewer_id, timestamp))
    return MutationPlan(PlanKind.UPDATE_TAGS, tags=tags)


def _plan_reply(target, state: VoteState, requested_type: str, viewer_id: str) -> MutationPlan:
    if state.viewer_vote == requested_type:
        return MutationPlan(PlanKind.DELETE_ANNOTATION, annotation_id=state.viewer_vote_id)

    payload = vote_reply_payload(target, requested_type, viewer_id)
    if state.viewer_vote == NO_VOTE:
        return MutationPlan(PlanKind.CREATE_ANNOTATION, payload=payload)
    return MutationPlan(
        PlanKind.REPLACE_ANNOTATION,
        payload=payload,
        annotation_id=state.viewer_vote_id,
    )


def apply_vote(target, current_state: VoteState, requested_type: str,
               viewer_id: Optional[str], scheme: str = INLINE_SCHEME,
               now: Optional[int] = None) -> MutationPlan:
    """
    Plan the effect of ``viewer_id`` clicking ``requested_type`` on ``target``.

    Voting the type already cast retracts it, voting the other type
    switches, and voting with no current vote adds one. Other tags keep
    their order.

    Args:
        target: Annotation being voted on
        current_state: State returned by ``derive`` for the same viewer
        requested_type: ``like`` or ``dislike``
        viewer_id: Account id of the viewer, None when logged out
        scheme: Encoding used to write the vote
        now: Unix timestamp for new inline markers (defaults to the clock)
    """
    check_vote_type(requested_type)

    if not viewer_id:
        return MutationPlan.requires_login()
    if not is_eligible_vote_target(target):
        return MutationPlan.no_op()

    if scheme == INLINE_SCHEME:
        return _plan_inline(target, current_state, requested_type, viewer_id, now)
    if scheme == REPLY_SCHEME:
        if current_state.viewer_vote != NO_VOTE and not current_state.viewer_vote_id:
            # The viewer's vote-reply has not been saved yet
            return MutationPlan.no_op()
        return _plan_reply(target, current_state, requested_type, viewer_id)
    raise ValueError(f"Unknown vote scheme: {scheme!r}")
