"""
Annotation Permissions

Permission records and the action authorizer that decides which controls a
viewer gets on an annotation card.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional

WORLD_PRINCIPAL = "group:__world__"
ACTIONS = ("read", "update", "delete")


def _principals(value: Any) -> FrozenSet[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return frozenset(p for p in value if isinstance(p, str) and p)
    return frozenset()


@dataclass(frozen=True)
class Permissions:
    """Which principals may read, update or delete an annotation."""
    read: FrozenSet[str] = field(default_factory=frozenset)
    update: FrozenSet[str] = field(default_factory=frozenset)
    delete: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Permissions":
        """Build from stored JSON; missing or malformed entries grant nothing."""
        if isinstance(data, Permissions):
            return data
        if not isinstance(data, Mapping):
            return cls()
        return cls(**{action: _principals(data.get(action)) for action in ACTIONS})

    def principals(self, action: str) -> FrozenSet[str]:
        if action not in ACTIONS:
            raise ValueError(f"Unknown permission action: {action!r}")
        return getattr(self, action)

    def to_dict(self) -> Dict[str, list]:
        return {action: sorted(getattr(self, action)) for action in ACTIONS}


@dataclass(frozen=True)
class PermissionDecision:
    can_edit: bool = False
    can_delete: bool = False
    can_flag: bool = False
    can_share: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
            "can_flag": self.can_flag,
            "can_share": self.can_share,
        }


def permits(permissions, action: str, userid: Optional[str]) -> bool:
    """Is ``userid`` allowed to take ``action``, directly or by a world grant?"""
    principals = Permissions.from_dict(permissions).principals(action)
    if WORLD_PRINCIPAL in principals:
        return True
    return bool(userid) and userid in principals


def is_private(permissions, userid: Optional[str] = None) -> bool:
    """
    An annotation is private when only a single user may read it.

    If ``userid`` is given, that user must be the sole reader.
    """
    readers = Permissions.from_dict(permissions).read
    if len(readers) != 1:
        return False
    (reader,) = readers
    if userid is not None:
        return reader == userid
    return reader.startswith("acct:")


def shared_permissions(userid: str, group: Optional[str]) -> Permissions:
    """Readable by the whole group, editable and deletable only by the author."""
    return Permissions(
        read=frozenset({f"group:{group or '__world__'}"}),
        update=frozenset({userid}),
        delete=frozenset({userid}),
    )


def private_permissions(userid: str) -> Permissions:
    return Permissions(
        read=frozenset({userid}),
        update=frozenset({userid}),
        delete=frozenset({userid}),
    )


def authorize(permissions, viewer_id: Optional[str], author: Optional[str],
              flagging_enabled: bool, sharing_enabled: bool) -> PermissionDecision:
    """
    Decide which actions ``viewer_id`` may take on an annotation.

    Authors may never flag their own annotation and flagging requires a
    logged-in viewer. Sharing depends only on configuration.
    """
    return PermissionDecision(
        can_edit=permits(permissions, "update", viewer_id),
        can_delete=permits(permissions, "delete", viewer_id),
        can_flag=bool(flagging_enabled and viewer_id and viewer_id != author),
        can_share=bool(sharing_enabled),
    )
