"""
Vote Service

Runs a vote click end to end: derive the viewer's current vote, plan the
change and hand the plan to the persistence service. Only one vote per
annotation may be in flight at a time.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from annotation_controls.core.config import Settings
from annotation_controls.core.exceptions import PersistenceError, VoteInProgressError
from annotation_controls.core.notifications import ToastMessenger
from annotation_controls.core.security import ViewerProfile
from annotation_controls.core.vote_deriver import VoteState, derive
from annotation_controls.core.vote_mutator import MutationPlan, PlanKind, apply_vote
from annotation_controls.core.vote_tags import REPLY_SCHEME, check_vote_type
from annotation_controls.models.annotation import Annotation
from annotation_controls.services.annotations_service import AnnotationsService
from annotation_controls.utils.logger import get_struct_logger, log_user_action

logger = get_struct_logger("annotation_controls.votes")

APPLIED = "applied"
REQUIRES_LOGIN = "requires_login"
IGNORED = "ignored"
FAILED = "failed"


@dataclass
class VoteOutcome:
    status: str
    vote_state: VoteState
    messages: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "vote_state": self.vote_state.to_dict(),
            "messages": self.messages,
        }


class VoteTracker:
    """Annotation ids whose vote is currently being persisted."""

    def __init__(self):
        self._in_flight: Set[str] = set()

    def begin(self, annotation_id: str):
        if annotation_id in self._in_flight:
            raise VoteInProgressError(annotation_id)
        self._in_flight.add(annotation_id)

    def end(self, annotation_id: str):
        self._in_flight.discard(annotation_id)

    def is_in_flight(self, annotation_id: str) -> bool:
        return annotation_id in self._in_flight


# Shared by all requests served by this process
vote_tracker = VoteTracker()


class VoteService:
    """Apply like/dislike votes to annotations."""

    def __init__(self, annotations_service: AnnotationsService, settings: Settings,
                 tracker: Optional[VoteTracker] = None):
        self.annotations_service = annotations_service
        self.settings = settings
        self.tracker = tracker or vote_tracker

    @property
    def scheme(self) -> str:
        return self.settings.VOTE_SCHEME

    def _candidates(self, annotation: Annotation) -> List[Annotation]:
        if self.scheme != REPLY_SCHEME:
            return []
        return self.annotations_service.list_replies(annotation)

    def current_state(self, annotation: Annotation, viewer_id: Optional[str]) -> VoteState:
        return derive(annotation, self._candidates(annotation), viewer_id, self.scheme)

    async def execute(self, annotation: Annotation, plan: MutationPlan):
        """Carry out ``plan``; a replaced vote-reply is deleted before its successor is created."""
        if plan.kind == PlanKind.UPDATE_TAGS:
            await self.annotations_service.save({"id": annotation.id, "tags": plan.tags})
        elif plan.kind == PlanKind.CREATE_ANNOTATION:
            await self.annotations_service.save(plan.payload)
        elif plan.kind == PlanKind.DELETE_ANNOTATION:
            await self.annotations_service.delete(self.annotations_service.get(plan.annotation_id))
        elif plan.kind == PlanKind.REPLACE_ANNOTATION:
            await self.annotations_service.delete(self.annotations_service.get(plan.annotation_id))
            await self.annotations_service.save(plan.payload)

    async def vote(self, annotation: Annotation, requested_type: str,
                   viewer: ViewerProfile) -> VoteOutcome:
        """
        Toggle ``requested_type`` on ``annotation`` for ``viewer``.

        Returns a ``requires_login`` outcome for anonymous viewers and a
        ``failed`` outcome carrying an error notification when the store
        rejects the change. Raises VoteInProgressError for a re-entrant
        request on the same annotation.
        """
        check_vote_type(requested_type)
        toasts = ToastMessenger()

        if not viewer.is_logged_in:
            return VoteOutcome(REQUIRES_LOGIN, self.current_state(annotation, None))

        self.tracker.begin(annotation.id)
        try:
            state = self.current_state(annotation, viewer.userid)
            plan = apply_vote(annotation, state, requested_type, viewer.userid, self.scheme)
            if plan.is_no_op:
                return VoteOutcome(IGNORED, state)

            try:
                await self.execute(annotation, plan)
            except PersistenceError as e:
                logger.warning(
                    "vote_failed",
                    annotation_id=annotation.id,
                    vote_type=requested_type,
                    error=str(e),
                )
                toasts.error(f"Failed to {requested_type} annotation")
                return VoteOutcome(FAILED, state, toasts.to_list())

            new_state = self.current_state(annotation, viewer.userid)
        finally:
            self.tracker.end(annotation.id)

        logger.info(
            "vote_applied",
            annotation_id=annotation.id,
            plan=plan.kind.value,
            viewer_vote=new_state.viewer_vote,
        )
        log_user_action(
            viewer.userid, f"vote_{requested_type}", "annotation", annotation.id,
            details={"plan": plan.kind.value, "viewer_vote": new_state.viewer_vote},
        )
        return VoteOutcome(APPLIED, new_state, toasts.to_list())
