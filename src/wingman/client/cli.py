"""Command-line interface for Wingman using Click."""

import asyncio
import logging
import os
from pathlib import Path

import click
from dotenv import load_dotenv

from wingman.client.assistant import TurnOptions, final_answer, run_turn
from wingman.client.cli_helpers import (
    format_search_result,
    load_registry,
    resolve_repository,
    state_path,
)
from wingman.client.ingest import chunk_text, extract_text, is_supported_file
from wingman.constants import (
    DEFAULT_BRIDGE_URL,
    get_context_pages,
    get_max_tool_iterations,
)
from wingman.llm import get_llm_service
from wingman.service.chat import ChatStore
from wingman.service.repository import (
    FileStatus,
    IngestionPipeline,
    KnowledgeBase,
    RetrievalMode,
    save_state,
)

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO")),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

STATE_OPTION = click.option(
    "--state",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Repository state file (default: from WINGMAN_STATE_FILE env or 'wingman_state.json')",
)


@click.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--repository",
    type=str,
    default=None,
    help="Repository to ingest into; created if missing (default: current or 'default')",
)
@click.option(
    "--embedding-model",
    type=str,
    default=None,
    help="Embedding model for a new repository (default: from EMBEDDING_MODEL env)",
)
@STATE_OPTION
def ingest(
    directory: Path,
    repository: str | None,
    embedding_model: str | None,
    state: Path | None,
) -> None:
    """Ingest supported files from DIRECTORY into a knowledge repository.

    Example:
        wingman-ingest documents/
        wingman-ingest documents/ --repository papers
    """
    files = sorted(p for p in directory.iterdir() if p.is_file() and is_supported_file(p.name))
    if not files:
        click.echo(f"No supported files found in '{directory}'")
        return

    registry = load_registry(state)
    repo = resolve_repository(registry, repository, create=True, embedding_model=embedding_model)

    click.echo(f"Found {len(files)} file(s)")
    click.echo(f"Repository: {repo.name}")
    click.echo(f"Using embedding model: {repo.embedder}\n")

    pipeline = IngestionPipeline(registry, get_llm_service(), extract_text, chunk_text)

    async def run() -> int:
        failures = 0
        for path in files:
            result = await pipeline.add_file(path.name, path.read_bytes(), repo.id)
            if result.status == FileStatus.COMPLETED:
                click.echo(f"  ✓ {path.name}: {len(result.segments or [])} segments")
            else:
                failures += 1
                click.echo(f"  ✗ Error processing {path.name}: {result.error}", err=True)
        return failures

    failures = asyncio.run(run())
    save_state(state_path(state), registry)

    if failures == len(files):
        click.echo("\n✗ No files were ingested.", err=True)
        raise click.Abort()
    click.echo(f"✓ Ingestion complete! {len(files) - failures} of {len(files)} file(s) indexed.")


@click.command()
@click.argument("query", type=str)
@click.option("--repository", type=str, default=None, help="Repository to search (default: current)")
@click.option("--top-k", type=int, default=5, help="Number of results to return (default: 5)")
@STATE_OPTION
def search(query: str, repository: str | None, top_k: int, state: Path | None) -> None:
    """Search a repository for chunks similar to QUERY.

    Example:
        wingman-search "quantum mechanics"
        wingman-search "machine learning" --top-k 3 --repository papers
    """
    registry = load_registry(state)
    repo = resolve_repository(registry, repository)

    click.echo(f"🔍 Searching for: '{query}'")
    click.echo(f"   Returning top {top_k} results...\n")

    knowledge = KnowledgeBase(registry, get_llm_service(), repo.id)
    try:
        results = asyncio.run(knowledge.query_chunks(query, top_k))
    except ConnectionError as e:
        click.echo(f"✗ Connection error: {e}", err=True)
        click.echo("\nPlease ensure the LLM service is running.", err=True)
        raise click.Abort()
    except ValueError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    except Exception as e:
        click.echo(f"✗ Unexpected error: {e}", err=True)
        raise click.Abort()

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s):\n")
    for i, result in enumerate(results, 1):
        click.echo(format_search_result(i, result))


@click.command()
@click.argument("question", type=str)
@click.option("--repository", type=str, default=None, help="Repository to answer from (optional)")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in RetrievalMode]),
    default=None,
    help="Retrieval mode (default: from WINGMAN_RETRIEVAL_MODE env or 'auto')",
)
@STATE_OPTION
def chat(question: str, repository: str | None, mode: str | None, state: Path | None) -> None:
    """Ask QUESTION and print the assistant's answer.

    Example:
        wingman-chat "Summarize my notes" --repository notes
    """
    registry = load_registry(state)
    repo = resolve_repository(registry, repository) if repository else None

    service = get_llm_service()
    options = TurnOptions(
        repository_id=repo.id if repo else None,
        mode=RetrievalMode(mode or os.getenv("WINGMAN_RETRIEVAL_MODE", RetrievalMode.AUTO.value)),
        context_pages=get_context_pages(),
        bridge_url=os.getenv("WINGMAN_BRIDGE_URL", DEFAULT_BRIDGE_URL) or None,
        mcp_server_url=os.getenv("MCP_SERVER_URL") or None,
        max_iterations=get_max_tool_iterations(),
    )

    try:
        result = asyncio.run(run_turn(service, service.model, question, ChatStore(), registry, options))
    except Exception as e:
        click.echo(f"✗ Unexpected error: {e}", err=True)
        raise click.Abort()

    answer = final_answer(result)
    if answer is None:
        click.echo("No answer produced.")
        return
    if answer.error:
        click.echo(f"✗ {answer.error.code}: {answer.error.message}", err=True)
        raise click.Abort()
    click.echo(answer.content)


if __name__ == "__main__":
    ingest()
