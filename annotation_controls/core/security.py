"""
Viewer Identity

Sessions are issued by an external auth service which forwards the
logged-in account id in the ``X-Viewer-Id`` header. Requests without the
header are anonymous.
"""

import re
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status

from annotation_controls.utils.logger import log_security_event

ACCOUNT_ID_PATTERN = re.compile(r"^acct:[^@\s]+@[^@\s]+$")


@dataclass(frozen=True)
class ViewerProfile:
    """The viewer of an annotation card."""
    userid: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_logged_in(self) -> bool:
        return bool(self.userid)


ANONYMOUS = ViewerProfile()


def get_current_viewer(
    x_viewer_id: Optional[str] = Header(default=None),
    x_viewer_display_name: Optional[str] = Header(default=None),
) -> ViewerProfile:
    """Dependency resolving the viewer profile from request headers."""
    if not x_viewer_id:
        return ANONYMOUS

    if not ACCOUNT_ID_PATTERN.match(x_viewer_id):
        log_security_event(
            event_type="invalid_token",
            severity="medium",
            details={"reason": "malformed viewer id", "viewer_id": x_viewer_id},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid viewer id"
        )

    return ViewerProfile(userid=x_viewer_id, display_name=x_viewer_display_name)
