"""
Vote Tag Grammar

Votes are stored as tags in a reserved ``vote:`` namespace using one of
two encodings:

- reply scheme: a reply annotation carries exactly ``vote:like`` or
  ``vote:dislike`` and the voter is the reply's author.
- inline scheme: the voted-on annotation carries
  ``vote:<type>:<userid>:<timestamp>``. Account ids contain ``:``
  (``acct:bob@example.com``), so the timestamp is always the last segment.

Parsing is strict. A tag that does not match the grammar exactly is not a
vote marker and is never counted.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from annotation_controls.core.exceptions import ReservedTagError

RESERVED_TAG_PREFIX = "vote:"

LIKE = "like"
DISLIKE = "dislike"
NO_VOTE = "none"
VOTE_TYPES = (LIKE, DISLIKE)

INLINE_SCHEME = "inline"
REPLY_SCHEME = "reply"
VOTE_SCHEMES = (INLINE_SCHEME, REPLY_SCHEME)


@dataclass(frozen=True)
class InlineVote:
    """A parsed inline vote marker."""
    vote_type: str
    userid: str
    timestamp: int


def check_vote_type(vote_type: str) -> str:
    if vote_type not in VOTE_TYPES:
        raise ValueError(f"Unknown vote type: {vote_type!r}")
    return vote_type


def format_inline_vote(vote_type: str, userid: str, timestamp: int) -> str:
    """Build an inline vote marker for ``userid``."""
    check_vote_type(vote_type)
    if not userid:
        raise ValueError("An inline vote needs a voter id")
    return f"{RESERVED_TAG_PREFIX}{vote_type}:{userid}:{int(timestamp)}"


def format_reply_vote(vote_type: str) -> str:
    return RESERVED_TAG_PREFIX + check_vote_type(vote_type)


def parse_inline_vote(tag) -> Optional[InlineVote]:
    """
    Parse an inline vote marker.

    Returns None for anything that is not a well-formed marker, including
    non-string values, unknown vote types, an empty voter id or a
    non-numeric timestamp.
    """
    if not isinstance(tag, str) or not tag.startswith(RESERVED_TAG_PREFIX):
        return None

    vote_type, sep, rest = tag[len(RESERVED_TAG_PREFIX):].partition(":")
    if not sep or vote_type not in VOTE_TYPES:
        return None

    userid, sep, timestamp = rest.rpartition(":")
    if not sep or not userid or not timestamp.isdigit() or not timestamp.isascii():
        return None

    return InlineVote(vote_type=vote_type, userid=userid, timestamp=int(timestamp))


def parse_reply_vote(tag) -> Optional[str]:
    """Return the vote type of a reply-scheme marker, else None."""
    if not isinstance(tag, str) or not tag.startswith(RESERVED_TAG_PREFIX):
        return None
    vote_type = tag[len(RESERVED_TAG_PREFIX):]
    return vote_type if vote_type in VOTE_TYPES else None


def is_reserved_tag(tag) -> bool:
    return isinstance(tag, str) and tag.strip().lower().startswith(RESERVED_TAG_PREFIX)


def user_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Tags that belong to the user, i.e. everything outside the vote namespace."""
    return [tag for tag in (tags or []) if not is_reserved_tag(tag)]


def reserved_tags(tags: Optional[Iterable[str]]) -> List[str]:
    return [tag for tag in (tags or []) if is_reserved_tag(tag)]


def validate_user_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """
    Normalize tags entered by a user.

    Strips whitespace and drops empty and repeated tags while keeping
    order. Raises ReservedTagError if any tag falls in the reserved
    namespace, so a topical tag can never be read back as a vote.
    """
    cleaned = []
    for tag in tags or []:
        tag = str(tag).strip()
        if not tag:
            continue
        if is_reserved_tag(tag):
            raise ReservedTagError(tag)
        if tag not in cleaned:
            cleaned.append(tag)
    return cleaned
