"""
Annotation Metadata Helpers

Read-only helpers describing an annotation for its card header and body:
role, edit state, document title and domain, page labels.
"""

from datetime import datetime
from typing import Dict, Optional
from urllib.parse import urlparse

from annotation_controls.core.vote_tags import user_tags

TITLE_MAX_LENGTH = 30


def is_reply(annotation) -> bool:
    return bool(getattr(annotation, "references", None))


def _selectors(annotation) -> list:
    selectors = []
    for target in getattr(annotation, "target", None) or []:
        if isinstance(target, dict):
            selectors.extend(target.get("selector") or [])
    return selectors


def is_page_note(annotation) -> bool:
    """A top-level annotation that is not anchored to a selection."""
    return not is_reply(annotation) and not _selectors(annotation)


def is_highlight(annotation) -> bool:
    """An anchored top-level annotation with neither text nor user tags."""
    if is_reply(annotation) or is_page_note(annotation):
        return False
    text = (getattr(annotation, "text", None) or "").strip()
    return not text and not user_tags(getattr(annotation, "tags", None))


def is_hidden(annotation) -> bool:
    return bool(getattr(annotation, "hidden", False))


def annotation_role(annotation) -> str:
    if is_reply(annotation):
        return "Reply"
    if is_highlight(annotation):
        return "Highlight"
    if is_page_note(annotation):
        return "Page note"
    return "Annotation"


def _as_datetime(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def has_been_edited(annotation) -> bool:
    created = _as_datetime(getattr(annotation, "created", None))
    updated = _as_datetime(getattr(annotation, "updated", None))
    if created is None or updated is None:
        return False
    return updated > created


def page_label(annotation) -> Optional[str]:
    for selector in _selectors(annotation):
        if isinstance(selector, dict) and selector.get("type") == "PageSelector":
            label = selector.get("label")
            if label:
                return str(label)
    return None


def _is_web_uri(uri: Optional[str]) -> bool:
    return bool(uri) and (uri.startswith("http://") or uri.startswith("https://"))


def _title_text(annotation) -> str:
    document = getattr(annotation, "document", None) or {}
    titles = document.get("title") if isinstance(document, dict) else None
    title = titles[0] if titles else (getattr(annotation, "uri", None) or "")
    if len(title) > TITLE_MAX_LENGTH:
        title = title[:TITLE_MAX_LENGTH] + "…"
    return title


def _title_link(annotation) -> Optional[str]:
    links = getattr(annotation, "links", None) or {}
    if links.get("incontext"):
        return links["incontext"]
    uri = getattr(annotation, "uri", None)
    return uri if _is_web_uri(uri) else None


def _domain(annotation) -> Optional[str]:
    uri = getattr(annotation, "uri", None)
    if not _is_web_uri(uri):
        return None
    return urlparse(uri).hostname or None


def domain_and_title(annotation) -> Dict[str, Optional[str]]:
    """
    Document information shown under the author name.

    The domain is omitted when the title already shows it, and file URIs
    get neither a domain nor a link.
    """
    title_text = _title_text(annotation)
    domain = _domain(annotation)
    if domain and domain == title_text:
        domain = None
    return {
        "domain": domain,
        "title_text": title_text,
        "title_link": _title_link(annotation),
    }
