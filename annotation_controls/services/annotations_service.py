"""
Annotations Service

Persistence collaborator for annotation cards: builds, saves, deletes and
flags annotations. Every failure is rolled back and reported as a
PersistenceError so callers never keep a half-applied change.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from annotation_controls.core.exceptions import AnnotationNotFoundError, PersistenceError
from annotation_controls.core.permissions import Permissions, shared_permissions
from annotation_controls.core.vote_tags import user_tags
from annotation_controls.models.annotation import Annotation
from annotation_controls.utils.logger import get_logger, log_user_action

logger = get_logger(__name__)

# Fields a save() may change on an existing annotation
UPDATABLE_FIELDS = ("text", "tags", "permissions", "target", "document", "hidden")

CREATE_FIELDS = (
    "user", "user_display_name", "group", "uri", "target", "document", "text",
    "tags", "references", "permissions", "links",
)


def _is_edit(field: str, old, new) -> bool:
    """Whether changing ``field`` counts as the author editing the annotation."""
    if field == "tags":
        # Vote markers live in the tag list but are not part of the content
        return user_tags(old) != user_tags(new)
    return old != new


class AnnotationsService:
    """Annotation persistence backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, annotation_id: str) -> Annotation:
        annotation = self.db.query(Annotation).filter(Annotation.id == annotation_id).first()
        if annotation is None:
            raise AnnotationNotFoundError(annotation_id)
        return annotation

    def list_for_uri(self, uri: Optional[str]) -> List[Annotation]:
        return (
            self.db.query(Annotation)
            .filter(Annotation.uri == uri)
            .order_by(Annotation.created, Annotation.id)
            .all()
        )

    def list_replies(self, parent: Annotation) -> List[Annotation]:
        """All annotations in the parent's thread, at any depth."""
        # Replies share the parent's uri; references are JSON so filter here
        return [
            candidate for candidate in self.list_for_uri(parent.uri)
            if parent.id in (candidate.references or [])
        ]

    def annotation_from_data(self, partial: Dict[str, Any]) -> Annotation:
        """
        Build a well-formed, unsaved annotation from partial data.

        Missing fields get defaults and a missing permission record becomes
        the shared permissions of the author's group.
        """
        data = {key: partial[key] for key in CREATE_FIELDS if partial.get(key) is not None}
        if not data.get("user"):
            raise ValueError("An annotation needs an author")

        data.setdefault("group", "__world__")
        data.setdefault("text", "")
        data.setdefault("tags", [])
        data.setdefault("references", [])
        data.setdefault("target", [])
        data.setdefault("document", {})
        data.setdefault("links", {})
        if "permissions" not in data:
            data["permissions"] = shared_permissions(data["user"], data["group"]).to_dict()
        else:
            data["permissions"] = Permissions.from_dict(data["permissions"]).to_dict()

        data["tags"] = list(data["tags"])
        data["references"] = list(data["references"])
        return Annotation(flagged_by=[], hidden=False, **data)

    async def save(self, payload: Union[Annotation, Dict[str, Any]]) -> Annotation:
        """Create ``payload`` if it has no id, otherwise update the stored annotation."""
        if isinstance(payload, Annotation):
            annotation = payload
        elif payload.get("id"):
            annotation = self.get(payload["id"])
            edited = False
            for key in UPDATABLE_FIELDS:
                if key in payload:
                    value = payload[key]
                    value = list(value) if isinstance(value, (list, tuple)) else value
                    edited = edited or _is_edit(key, getattr(annotation, key), value)
                    setattr(annotation, key, value)
            if edited:
                annotation.updated = datetime.utcnow()
        else:
            annotation = self.annotation_from_data(payload)

        try:
            self.db.add(annotation)
            self.db.commit()
            self.db.refresh(annotation)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving annotation {annotation.id}: {str(e)}")
            raise PersistenceError("save", str(e)) from e

        logger.debug(f"Saved annotation {annotation.id}")
        return annotation

    async def delete(self, annotation: Annotation) -> None:
        annotation_id = annotation.id
        try:
            self.db.delete(annotation)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting annotation {annotation_id}: {str(e)}")
            raise PersistenceError("delete", str(e)) from e

        logger.debug(f"Deleted annotation {annotation_id}")

    async def flag(self, annotation: Annotation, userid: str) -> Annotation:
        """Report ``annotation`` to the moderators on behalf of ``userid``."""
        if annotation.is_flagged_by(userid):
            return annotation

        try:
            annotation.flagged_by = list(annotation.flagged_by or []) + [userid]
            self.db.commit()
            self.db.refresh(annotation)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error flagging annotation {annotation.id}: {str(e)}")
            raise PersistenceError("flag", str(e)) from e

        log_user_action(userid, "annotation_flagged", "annotation", annotation.id)
        return annotation
