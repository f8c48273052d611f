"""Helper functions for CLI commands."""

import os
from pathlib import Path

import click

from wingman.constants import DEFAULT_STATE_FILE, get_embedding_model
from wingman.service.repository import (
    FileChunk,
    Repository,
    RepositoryRegistry,
    load_state,
)


def state_path(state: Path | None) -> Path:
    return state or Path(os.getenv("WINGMAN_STATE_FILE", DEFAULT_STATE_FILE))


def load_registry(state: Path | None) -> RepositoryRegistry:
    """Load the registry from the state file, aborting on unreadable state.

    Raises:
        click.Abort: If the state file exists but cannot be loaded
    """
    path = state_path(state)
    try:
        return load_state(path)
    except Exception as e:
        click.echo(f"✗ Error loading state from {path}: {e}", err=True)
        raise click.Abort()


def resolve_repository(
    registry: RepositoryRegistry,
    name: str | None,
    create: bool = False,
    embedding_model: str | None = None,
) -> Repository:
    """Find a repository by name (or the current one), optionally creating it.

    Raises:
        click.Abort: If no matching repository exists and create is False
    """
    if name is None:
        if registry.current is not None:
            return registry.current
        if not create:
            click.echo("✗ Error: No repository selected. Use --repository NAME.", err=True)
            raise click.Abort()
        name = "default"

    repository = registry.find_repository_by_name(name)
    if repository is not None:
        registry.set_current(repository.id)
        return repository

    if not create:
        click.echo(f"✗ Error: Repository '{name}' does not exist!", err=True)
        click.echo("\nPlease ingest files first using:", err=True)
        click.echo(f"  wingman-ingest <directory> --repository {name}", err=True)
        raise click.Abort()

    click.echo(f"Creating repository '{name}'...")
    return registry.create_repository(name, embedder=embedding_model or get_embedding_model())


def format_search_result(index: int, chunk: FileChunk, max_length: int = 200) -> str:
    """Format a search result for display.

    Args:
        index: Result number (1-based)
        chunk: Matched chunk with its file and similarity
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    content = chunk.text
    display_content = content[:max_length] + "..." if len(content) > max_length else content

    lines = [
        f"{index}. [{chunk.file.name}] (similarity: {chunk.similarity:.4f})",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)
