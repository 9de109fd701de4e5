"""
Viewer Notifications

Transient messages (toasts) produced while handling a card action. The
client decides how to present them; the service only collects them and
returns them with the response.
"""

from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import Any, Dict, List

from annotation_controls.utils.logger import get_logger

logger = get_logger(__name__)


class NotificationType(PyEnum):
    SUCCESS = "success"
    ERROR = "error"
    NOTICE = "notice"


@dataclass
class Notification:
    notification_type: NotificationType
    message: str
    # Announced to assistive technology only
    visually_hidden: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.notification_type.value,
            "message": self.message,
            "visually_hidden": self.visually_hidden,
        }


@dataclass
class ToastMessenger:
    """Collects the notifications for one request."""
    messages: List[Notification] = field(default_factory=list)

    def success(self, message: str, visually_hidden: bool = False):
        self.messages.append(Notification(NotificationType.SUCCESS, message, visually_hidden))

    def error(self, message: str):
        logger.warning(f"Reporting error to viewer: {message}")
        self.messages.append(Notification(NotificationType.ERROR, message))

    def notice(self, message: str):
        self.messages.append(Notification(NotificationType.NOTICE, message))

    def has_errors(self) -> bool:
        return any(m.notification_type == NotificationType.ERROR for m in self.messages)

    def to_list(self) -> List[Dict[str, Any]]:
        return [message.to_dict() for message in self.messages]
