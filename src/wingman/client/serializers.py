"""JSON views of chats and repositories for the API and CLI."""

from typing import Any

from wingman.service.chat import Chat, Message
from wingman.service.repository import Repository, RepositoryFile


def serialize_message(message: Message) -> dict[str, Any]:
    data: dict[str, Any] = {"role": message.role.value, "content": message.content}
    if message.attachments:
        data["attachments"] = [
            {"type": a.type.value, "name": a.name, "data": a.data, "meta": a.meta}
            for a in message.attachments
        ]
    if message.error:
        data["error"] = {"code": message.error.code, "message": message.error.message}
    if message.tool_calls:
        data["tool_calls"] = [
            {"id": c.id, "name": c.name, "arguments": c.arguments} for c in message.tool_calls
        ]
    if message.tool_result:
        result = message.tool_result
        data["tool_result"] = {
            "id": result.id,
            "name": result.name,
            "arguments": result.arguments,
            "data": result.data,
        }
    return data


def serialize_chat(chat: Chat) -> dict[str, Any]:
    return {
        "id": chat.id,
        "title": chat.title,
        "created": chat.created.isoformat(),
        "updated": chat.updated.isoformat(),
        "model": chat.model.id if chat.model else None,
        "messages": [serialize_message(m) for m in chat.messages],
    }


def file_summary(file: RepositoryFile) -> dict[str, Any]:
    """File metadata without its content, text or vectors."""
    return {
        "id": file.id,
        "name": file.name,
        "status": file.status.value,
        "progress": file.progress,
        "error": file.error,
        "segments": len(file.segments or []),
        "characters": len(file.text or ""),
        "uploaded_at": file.uploaded_at.isoformat(),
    }


def repository_summary(repository: Repository) -> dict[str, Any]:
    return {
        "id": repository.id,
        "name": repository.name,
        "embedder": repository.embedder,
        "instructions": repository.instructions,
        "files": [file_summary(f) for f in repository.files],
        "created_at": repository.created_at.isoformat(),
        "updated_at": repository.updated_at.isoformat(),
    }
