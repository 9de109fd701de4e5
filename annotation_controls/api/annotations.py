"""
Annotations API Routes

Card endpoints: view model, edit, delete, flag, reply and vote.
"""

from typing import Any, Dict, List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from annotation_controls.core.config import Settings, get_settings
from annotation_controls.core.database import get_db
from annotation_controls.core.exceptions import (
    AnnotationNotFoundError,
    PersistenceError,
    ReservedTagError,
    VoteInProgressError,
)
from annotation_controls.core.notifications import ToastMessenger
from annotation_controls.core.permissions import (
    PermissionDecision,
    authorize,
    private_permissions,
    shared_permissions,
)
from annotation_controls.core.security import ViewerProfile, get_current_viewer
from annotation_controls.core.vote_tags import reserved_tags, validate_user_tags
from annotation_controls.models.annotation import Annotation
from annotation_controls.services.annotations_service import AnnotationsService
from annotation_controls.services.card_presenter import SIDEBAR_ROUTE, CardPresenter
from annotation_controls.services.vote_service import FAILED, VoteService
from annotation_controls.utils.annotation_metadata import annotation_role
from annotation_controls.utils.logger import get_logger, log_user_action

router = APIRouter()
logger = get_logger(__name__)


# Pydantic models
class AnnotationCreate(BaseModel):
    uri: str
    text: str = ""
    tags: List[str] = Field(default_factory=list)
    target: List[Dict[str, Any]] = Field(default_factory=list)
    document: Dict[str, Any] = Field(default_factory=dict)
    group: str = "__world__"
    is_private: bool = False


class AnnotationUpdate(BaseModel):
    text: Optional[str] = None
    tags: Optional[List[str]] = None
    is_private: Optional[bool] = None


class ReplyCreate(BaseModel):
    text: str = ""
    tags: List[str] = Field(default_factory=list)


class VoteRequest(BaseModel):
    type: Literal["like", "dislike"]


def get_annotations_service(db: Session = Depends(get_db)) -> AnnotationsService:
    return AnnotationsService(db)


def _get_or_404(service: AnnotationsService, annotation_id: str) -> Annotation:
    try:
        return service.get(annotation_id)
    except AnnotationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Annotation not found"
        )


def _decision(annotation: Annotation, viewer: ViewerProfile, settings: Settings) -> PermissionDecision:
    return authorize(
        annotation.permissions,
        viewer.userid,
        annotation.user,
        settings.flagging_enabled(),
        settings.sharing_enabled(),
    )


def _clean_tags(tags: List[str]) -> List[str]:
    try:
        return validate_user_tags(tags)
    except ReservedTagError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


def _require_login(viewer: ViewerProfile):
    if not viewer.is_logged_in:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required"
        )


def _persistence_failed(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=message)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_annotation(
    annotation_data: AnnotationCreate,
    viewer: ViewerProfile = Depends(get_current_viewer),
    service: AnnotationsService = Depends(get_annotations_service)
):
    """Create a new top-level annotation."""
    _require_login(viewer)

    if annotation_data.is_private:
        permissions = private_permissions(viewer.userid)
    else:
        permissions = shared_permissions(viewer.userid, annotation_data.group)

    try:
        annotation = await service.save({
            "user": viewer.userid,
            "user_display_name": viewer.display_name,
            "group": annotation_data.group,
            "uri": annotation_data.uri,
            "text": annotation_data.text,
            "tags": _clean_tags(annotation_data.tags),
            "target": annotation_data.target,
            "document": annotation_data.document,
            "permissions": permissions.to_dict(),
        })
    except PersistenceError:
        raise _persistence_failed("Saving annotation failed")

    log_user_action(viewer.userid, "annotation_created", "annotation", annotation.id)
    return annotation.to_dict(viewer.userid)


@router.get("/{annotation_id}")
async def get_annotation(
    annotation_id: str,
    viewer: ViewerProfile = Depends(get_current_viewer),
    service: AnnotationsService = Depends(get_annotations_service)
):
    """Get an annotation by id."""
    annotation = _get_or_404(service, annotation_id)
    return annotation.to_dict(viewer.userid)


@router.get("/{annotation_id}/card")
async def get_annotation_card(
    annotation_id: str,
    route: str = Query(SIDEBAR_ROUTE),
    thread_collapsed: bool = Query(False),
    viewer: ViewerProfile = Depends(get_current_viewer),
    service: AnnotationsService = Depends(get_annotations_service),
    settings: Settings = Depends(get_settings)
):
    """Header, body and action bar state for one annotation card."""
    annotation = _get_or_404(service, annotation_id)
    related = service.list_replies(annotation)
    return CardPresenter(settings).card(
        annotation, related, viewer, route=route, thread_collapsed=thread_collapsed
    )


@router.patch("/{annotation_id}")
async def update_annotation(
    annotation_id: str,
    annotation_update: AnnotationUpdate,
    viewer: ViewerProfile = Depends(get_current_viewer),
    service: AnnotationsService = Depends(get_annotations_service),
    settings: Settings = Depends(get_settings)
):
    """Edit an annotation's text, tags or visibility."""
    annotation = _get_or_404(service, annotation_id)

    if not _decision(annotation, viewer, settings).can_edit:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to edit this annotation"
        )

    payload = {"id": annotation.id}
    if annotation_update.text is not None:
        payload["text"] = annotation_update.text
    if annotation_update.tags is not None:
        # Vote markers are not editable and survive the edit
        payload["tags"] = _clean_tags(annotation_update.tags) + reserved_tags(annotation.tags)
    if annotation_update.is_private is not None:
        if annotation_update.is_private:
            payload["permissions"] = private_permissions(annotation.user).to_dict()
        else:
            payload["permissions"] = shared_permissions(annotation.user, annotation.group).to_dict()

    try:
        annotation = await service.save(payload)
    except PersistenceError:
        raise _persistence_failed("Saving annotation failed")

    log_user_action(viewer.userid, "annotation_updated", "annotation", annotation.id)
    return annotation.to_dict(viewer.userid)


@router.delete("/{annotation_id}")
async def delete_annotation(
    annotation_id: str,
    viewer: ViewerProfile = Depends(get_current_viewer),
    service: AnnotationsService = Depends(get_annotations_service),
    settings: Settings = Depends(get_settings)
):
    """Delete an annotation."""
    annotation = _get_or_404(service, annotation_id)

    if not _decision(annotation, viewer, settings).can_delete:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to delete this annotation"
        )

    role = annotation_role(annotation)
    try:
        await service.delete(annotation)
    except PersistenceError as e:
        raise _persistence_failed(str(e))

    log_user_action(viewer.userid, "annotation_deleted", "annotation", annotation_id)
    toasts = ToastMessenger()
    toasts.success(f"{role} deleted", visually_hidden=True)
    return {"id": annotation_id, "deleted": True, "messages": toasts.to_list()}


@router.post("/{annotation_id}/flag")
async def flag_annotation(
    annotation_id: str,
    viewer: ViewerProfile = Depends(get_current_viewer),
    service: AnnotationsService = Depends(get_annotations_service),
    settings: Settings = Depends(get_settings)
):
    """Report an annotation to the moderators."""
    annotation = _get_or_404(service, annotation_id)

    if not _decision(annotation, viewer, settings).can_flag:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to flag this annotation"
        )

    try:
        annotation = await service.flag(annotation, viewer.userid)
    except PersistenceError:
        raise _persistence_failed("Flagging annotation failed")

    return {"id": annotation.id, "flagged": True}


@router.post("/{annotation_id}/replies")
async def create_reply(
    annotation_id: str,
    reply_data: ReplyCreate,
    viewer: ViewerProfile = Depends(get_current_viewer),
    service: AnnotationsService = Depends(get_annotations_service)
):
    """Reply to an annotation, or ask the client to prompt for login."""
    parent = _get_or_404(service, annotation_id)

    if not viewer.is_logged_in:
        return {"status": "requires_login"}

    try:
        reply = await service.save({
            "user": viewer.userid,
            "user_display_name": viewer.display_name,
            "group": parent.group,
            "uri": parent.uri,
            "target": [{"source": parent.uri}],
            "references": list(parent.references or []) + [parent.id],
            "text": reply_data.text,
            "tags": _clean_tags(reply_data.tags),
        })
    except PersistenceError:
        raise _persistence_failed("Saving reply failed")

    log_user_action(viewer.userid, "reply_created", "annotation", reply.id,
                    details={"parent_id": parent.id})
    return {"status": "created", "annotation": reply.to_dict(viewer.userid)}


@router.post("/{annotation_id}/vote")
async def vote_on_annotation(
    annotation_id: str,
    vote_request: VoteRequest,
    viewer: ViewerProfile = Depends(get_current_viewer),
    service: AnnotationsService = Depends(get_annotations_service),
    settings: Settings = Depends(get_settings)
):
    """Like or dislike an annotation; repeating the same vote retracts it."""
    annotation = _get_or_404(service, annotation_id)

    try:
        outcome = await VoteService(service, settings).vote(annotation, vote_request.type, viewer)
    except VoteInProgressError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

    if outcome.status == FAILED:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=outcome.to_dict())
    return outcome.to_dict()
