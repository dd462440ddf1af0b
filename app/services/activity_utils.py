"""Helpers for reading files out of inbound chat events.

Chat clients describe uploaded files in several ways: a file-info
attachment, an HTML snippet with a link, or only a name buried somewhere in
``channelData`` / ``entities``. These helpers find the file name whichever
shape arrives.
"""

from __future__ import annotations

import html
import re
from typing import Any, Dict, Iterable, Optional

from app.models.inbound_event import Attachment, InboundEvent


FILE_DOWNLOAD_INFO_TYPE = "application/vnd.microsoft.teams.file.download.info"
TEAMS_FILE_PREFIX = "application/vnd.microsoft.teams.file."
TEAMS_FILE_CARD = "application/vnd.microsoft.teams.card.file"

ANCHOR_TEXT_RE = re.compile(r"<a\b[^>]*>([^<]{1,300})</a>", re.IGNORECASE)
TITLE_ATTR_RE = re.compile(r"\btitle\s*=\s*\"([^\"]{1,300})\"", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
FILE_LIKE_RE = re.compile(r"(\S{1,200}\.[a-z0-9]{1,8})", re.IGNORECASE)
HAS_EXTENSION_RE = re.compile(r"\.[a-z0-9]{1,8}$", re.IGNORECASE)

NAME_KEYS = ("fileName", "filename", "name", "originalName", "title")
MAX_SEARCH_DEPTH = 4


def decode_html_entities(text: str) -> str:
    return html.unescape(text).replace("\xa0", " ")


def _file_name_from_html(markup: str) -> Optional[str]:
    for match in ANCHOR_TEXT_RE.finditer(markup):
        text = decode_html_entities(match.group(1)).strip()
        if text:
            return text

    title = TITLE_ATTR_RE.search(markup)
    if title:
        return decode_html_entities(title.group(1)).strip() or None

    visible = re.sub(r"\s+", " ", decode_html_entities(TAG_RE.sub(" ", markup))).strip()
    file_like = FILE_LIKE_RE.search(visible)
    return file_like.group(1).strip() if file_like else None


def is_file_like_attachment(attachment: Attachment) -> bool:
    content_type = (attachment.content_type or "").lower()
    if not content_type:
        return False
    return (
        content_type == FILE_DOWNLOAD_INFO_TYPE
        or content_type.startswith(TEAMS_FILE_PREFIX)
        or TEAMS_FILE_CARD in content_type
        or content_type == "text/html"
    )


def _first_str(mapping: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def get_attachment_file_name(attachment: Attachment) -> Optional[str]:
    """Best guess at the file name an attachment refers to."""
    if attachment.name and attachment.name.strip():
        return attachment.name.strip()
    extra = attachment.model_extra or {}
    direct = _first_str(extra, ("filename",))
    if direct:
        return direct

    content = attachment.content
    if isinstance(content, str) and (attachment.content_type or "").lower() == "text/html":
        from_html = _file_name_from_html(content)
        if from_html:
            return from_html
    if isinstance(content, dict):
        from_content = _first_str(content, ("name", "fileName", "filename", "originalName"))
        if from_content:
            return from_content
        item = content.get("item")
        if isinstance(item, dict):
            return _first_str(item, ("name",))
    return None


def _deep_find(value: Any, keys: Iterable[str], depth: int = 0) -> Optional[str]:
    if value is None or depth > MAX_SEARCH_DEPTH:
        return None
    if isinstance(value, dict):
        found = _first_str(value, keys)
        if found:
            return found
        children = value.values()
    elif isinstance(value, list):
        children = value
    else:
        return None
    for child in children:
        found = _deep_find(child, keys, depth + 1)
        if found:
            return found
    return None


def get_file_name_from_event(event: InboundEvent) -> Optional[str]:
    """File name of an uploaded file in ``event``, if it carries one."""
    for attachment in event.attachments:
        name = get_attachment_file_name(attachment)
        if name:
            return name

    return _file_name_from_metadata(event)


def _file_name_from_metadata(event: InboundEvent) -> Optional[str]:
    for source in (event.channel_data, event.entities):
        candidate = _deep_find(source, NAME_KEYS)
        if candidate and HAS_EXTENSION_RE.search(candidate):
            return candidate
    return None


def get_uploaded_file_name(event: InboundEvent) -> Optional[str]:
    """Name of the uploaded file, or None for ordinary messages.

    Non-file attachments (cards, inline images) never count as uploads.
    """
    for attachment in event.attachments:
        if is_file_like_attachment(attachment):
            name = get_attachment_file_name(attachment)
            if name:
                return name
    return _file_name_from_metadata(event)


def summarize_event(event: InboundEvent) -> Dict[str, Any]:
    """Compact description of an event for debug logging."""
    return {
        "conversation_id": event.conversation_id,
        "sender_identity": event.sender_identity,
        "text": event.text[:140],
        "action": event.action,
        "attachments": [
            {"content_type": a.content_type, "name": a.name, "content": type(a.content).__name__}
            for a in event.attachments
        ],
        "channel_data_keys": sorted(event.channel_data.keys()) if event.channel_data else None,
    }
