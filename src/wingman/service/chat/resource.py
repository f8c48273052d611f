"""Promote resource-shaped tool results into message attachments."""

import json
import mimetypes
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from wingman.service.chat.models import Attachment, AttachmentType

SUCCESSFUL_RESULT = json.dumps({"successful": True})


@dataclass
class ParsedToolResult:
    """A tool result split into model-facing content and attachments."""

    content: str
    attachments: list[Attachment] = field(default_factory=list)


def _resource_payload(data: str) -> dict[str, Any] | None:
    try:
        value = json.loads(data)
    except (json.JSONDecodeError, TypeError):
        return None

    if not isinstance(value, dict) or value.get("type") != "resource":
        return None

    resource = value.get("resource")
    if not isinstance(resource, dict):
        return None
    if not isinstance(resource.get("uri"), str) or not isinstance(resource.get("mimeType"), str):
        return None
    if not isinstance(resource.get("blob"), str) and not isinstance(resource.get("text"), str):
        return None
    return resource


def resource_name(uri: str, mime_type: str) -> str:
    """Pick a display name for a resource.

    `ui://` URIs are kept whole; otherwise the last path segment is used if
    it looks like a file name, falling back to "resource" plus an extension
    guessed from the MIME type.
    """
    if uri.startswith("ui://"):
        return uri

    path = urlparse(uri).path or uri
    last = path.rstrip("/").rsplit("/", 1)[-1]
    if "." in last:
        return last

    extension = mimetypes.guess_extension(mime_type) or ".bin"
    return f"resource{extension}"


def parse_resource(data: str) -> ParsedToolResult:
    """Turn a resource payload into an attachment.

    Results that are not a well-formed resource pass through unchanged.

    Args:
        data: Raw tool output

    Returns:
        ParsedToolResult: For resources, content is {"successful": true} and
        the resource becomes a text, image or file attachment
    """
    resource = _resource_payload(data)
    if resource is None:
        return ParsedToolResult(content=data)

    uri = resource["uri"]
    mime_type = resource["mimeType"]
    name = resource_name(uri, mime_type)
    meta = resource.get("_meta") if isinstance(resource.get("_meta"), dict) else None

    if resource.get("text"):
        attachment = Attachment(type=AttachmentType.TEXT, name=name, data=resource["text"], meta=meta)
    elif resource.get("blob"):
        kind = AttachmentType.IMAGE if mime_type.startswith("image/") else AttachmentType.FILE
        attachment = Attachment(
            type=kind,
            name=name,
            data=f"data:{mime_type};base64,{resource['blob']}",
            meta=meta,
        )
    else:
        attachment = Attachment(type=AttachmentType.FILE, name=name, data="", meta=meta)

    return ParsedToolResult(content=SUCCESSFUL_RESULT, attachments=[attachment])
