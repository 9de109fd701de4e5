"""
Annotation Model

Database model for annotations, replies and vote-replies.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, Boolean, JSON

from annotation_controls.core.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class Annotation(Base):
    """Annotation on a document, with free-form tags and a permission record."""

    __tablename__ = "annotations"

    id = Column(String(32), primary_key=True, index=True, default=_new_id)

    # Author
    user = Column(String(255), nullable=False, index=True)
    user_display_name = Column(String(255))

    # Context copied onto replies
    group = Column(String(100), default="__world__")
    uri = Column(Text)
    target = Column(JSON, default=list)
    document = Column(JSON, default=dict)

    # Content
    text = Column(Text, default="")
    tags = Column(JSON, default=list)
    references = Column(JSON, default=list)
    permissions = Column(JSON, default=dict)
    links = Column(JSON, default=dict)

    # Moderation
    flagged_by = Column(JSON, default=list)
    hidden = Column(Boolean, default=False)

    # Timestamps
    created = Column(DateTime, default=datetime.utcnow)
    # Set by the service on edits only; votes and flags leave it alone
    updated = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Annotation(id={self.id}, user='{self.user}', references={self.references})>"

    def is_flagged_by(self, userid) -> bool:
        return bool(userid) and userid in (self.flagged_by or [])

    def to_dict(self, viewer_id=None):
        """Convert annotation to dictionary, with ``flagged`` as seen by ``viewer_id``."""
        return {
            "id": self.id,
            "user": self.user,
            "user_info": {"display_name": self.user_display_name},
            "group": self.group,
            "uri": self.uri,
            "target": self.target or [],
            "document": self.document or {},
            "text": self.text or "",
            "tags": list(self.tags or []),
            "references": list(self.references or []),
            "permissions": self.permissions or {},
            "links": self.links or {},
            "flagged": self.is_flagged_by(viewer_id),
            "hidden": bool(self.hidden),
            "created": self.created.isoformat() if self.created else None,
            "updated": self.updated.isoformat() if self.updated else None,
        }
