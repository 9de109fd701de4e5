"""
Annotation Card Presenter

Assembles the view model for one annotation card: header, body and action
bar. Everything it needs (viewer, settings, route, related annotations) is
passed in, and every value is re-derived on each call.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from annotation_controls.core.config import Settings
from annotation_controls.core.permissions import authorize, is_private
from annotation_controls.core.security import ViewerProfile
from annotation_controls.core.vote_deriver import derive, is_eligible_vote_target, is_vote_reply
from annotation_controls.core.vote_tags import user_tags
from annotation_controls.utils.annotation_metadata import (
    domain_and_title,
    has_been_edited,
    is_hidden,
    is_highlight,
    is_reply,
    page_label,
)
from annotation_controls.utils.annotation_user import (
    annotation_author_link,
    annotation_display_name,
    is_third_party_user,
    username,
)

SIDEBAR_ROUTE = "sidebar"


def reply_count_label(count: int) -> str:
    return f"{count} {'replies' if count > 1 else 'reply'}"


def _user_link(settings: Settings, userid: str) -> Optional[str]:
    name = username(userid)
    if not name or not settings.USER_LINK_TEMPLATE:
        return None
    return settings.USER_LINK_TEMPLATE.format(user=quote(name))


def _tag_search_link(settings: Settings, tag: str) -> str:
    return settings.TAG_SEARCH_LINK_TEMPLATE.format(tag=quote(tag))


class CardPresenter:
    """Build the card view model for an annotation."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def header(self, annotation, related: List, route: str, thread_collapsed: bool,
               is_editing: bool = False) -> Dict[str, Any]:
        settings = self.settings
        display_names = settings.is_feature_enabled("client_display_names")
        collapsed_reply = is_reply(annotation) and thread_collapsed
        links = annotation.links or {}
        annotation_url = links.get("html") or ""

        replies = [r for r in related if annotation.id in (r.references or []) and not is_vote_reply(r)]
        reply_count = len(replies)

        document = domain_and_title(annotation)
        show_document = route != SIDEBAR_ROUTE and bool(document["title_text"])
        # Third-party annotations have no html link; their documents are not linked
        document_link = document["title_link"] if annotation_url and document["title_link"] else ""

        header = {
            "is_private": is_private(annotation.permissions) and not is_editing,
            "author": {
                "display_name": annotation_display_name(
                    annotation, settings.DEFAULT_AUTHORITY, display_names
                ),
                "link": annotation_author_link(
                    annotation,
                    settings.USERNAME_URL,
                    settings.DEFAULT_AUTHORITY,
                    _user_link(settings, annotation.user),
                ),
            },
            "reply_count": reply_count,
            "reply_count_label": (
                reply_count_label(reply_count) if reply_count > 0 and collapsed_reply else None
            ),
            "timestamps": None,
            "extended_info": None,
        }

        if not is_editing and annotation.created:
            header["timestamps"] = {
                "created": annotation.created.isoformat(),
                "updated": annotation.updated.isoformat() if annotation.updated else None,
                "annotation_url": annotation_url,
                "show_edited": has_been_edited(annotation) and not collapsed_reply,
            }

        if not is_reply(annotation):
            header["extended_info"] = {
                # Group is shown elsewhere in the sidebar
                "group": annotation.group if route != SIDEBAR_ROUTE else None,
                "is_highlight": not is_editing and is_highlight(annotation),
                "document": {
                    "domain": document["domain"],
                    "title": document["title_text"],
                    "link": document_link,
                } if show_document else None,
                "page_number": page_label(annotation),
            }

        return header

    def body(self, annotation) -> Dict[str, Any]:
        settings = self.settings
        third_party = is_third_party_user(annotation.user, settings.DEFAULT_AUTHORITY)
        tags = user_tags(annotation.tags)

        return {
            "text": annotation.text or "",
            "show_excerpt": bool(annotation.text),
            "redacted": is_hidden(annotation),
            "mentions_enabled": settings.is_feature_enabled("at_mentions"),
            "mention_mode": "display-name" if third_party else "username",
            "tags": [
                {
                    "tag": tag,
                    "href": None if third_party else _tag_search_link(settings, tag),
                }
                for tag in tags
            ],
        }

    def action_bar(self, annotation, related: List, viewer: ViewerProfile) -> Dict[str, Any]:
        settings = self.settings
        decision = authorize(
            annotation.permissions,
            viewer.userid,
            annotation.user,
            settings.flagging_enabled(),
            settings.sharing_enabled(),
        )
        flagged = annotation.is_flagged_by(viewer.userid)
        links = annotation.links or {}

        actions = {
            "permissions": decision.to_dict(),
            "reply": {"requires_login": not viewer.is_logged_in},
            "flag": {"flagged": flagged} if decision.can_flag else None,
            "share": {"uri": links.get("incontext") or links.get("html")} if decision.can_share else None,
            "votes": None,
        }

        if is_eligible_vote_target(annotation):
            state = derive(annotation, related, viewer.userid, settings.VOTE_SCHEME)
            actions["votes"] = {
                **state.to_dict(),
                "like": {
                    "title": f"Like ({state.like_count})",
                    "pressed": state.viewer_vote == "like",
                },
                "dislike": {
                    "title": f"Dislike ({state.dislike_count})",
                    "pressed": state.viewer_vote == "dislike",
                },
                "requires_login": not viewer.is_logged_in,
            }

        return actions

    def card(self, annotation, related: List, viewer: ViewerProfile,
             route: str = SIDEBAR_ROUTE, thread_collapsed: bool = False) -> Dict[str, Any]:
        return {
            "id": annotation.id,
            "header": self.header(annotation, related, route, thread_collapsed),
            "body": self.body(annotation),
            "actions": self.action_bar(annotation, related, viewer),
        }
