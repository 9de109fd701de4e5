"""
Annotation author helpers: account id parsing, display names and author links.
"""

import re
from typing import Optional, Tuple

ACCOUNT_ID_RE = re.compile(r"^acct:([^@]+)@(.+)$")


def parse_account_id(userid: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split ``acct:<username>@<authority>`` into ``(username, authority)``."""
    if not userid:
        return None
    match = ACCOUNT_ID_RE.match(userid)
    if not match:
        return None
    return match.group(1), match.group(2)


def username(userid: Optional[str]) -> str:
    parsed = parse_account_id(userid)
    return parsed[0] if parsed else ""


def is_third_party_user(userid: Optional[str], default_authority: str) -> bool:
    parsed = parse_account_id(userid)
    if not parsed:
        return False
    return parsed[1] != default_authority


def _display_name(annotation) -> Optional[str]:
    return getattr(annotation, "user_display_name", None)


def annotation_display_name(annotation, default_authority: str, display_names_enabled: bool) -> str:
    """
    Name shown for the author of an annotation.

    Third-party authors always use their display name when one is known,
    first-party authors only when the display names feature is enabled.
    """
    third_party = is_third_party_user(annotation.user, default_authority)
    display_name = _display_name(annotation)
    if (display_names_enabled or third_party) and display_name:
        return display_name
    return username(annotation.user)


def annotation_author_link(annotation, username_url: Optional[str], default_authority: str,
                           user_url: Optional[str]) -> Optional[str]:
    """Link to the author's profile, if there is one to show."""
    third_party = is_third_party_user(annotation.user, default_authority)
    if not third_party and user_url:
        return user_url
    if third_party and username_url:
        return f"{username_url}{username(annotation.user)}"
    return None
