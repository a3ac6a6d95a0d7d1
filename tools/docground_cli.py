#!/usr/bin/env python3

import typer
from typing import List, Optional
from pathlib import Path
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config.ingest_config import IngestConfig, load_ingest_config
from indexer.corpus_store import CorpusStore
from indexer.lexical_retriever import LexicalRetriever
from observability.logging import setup_logging_from_config
from pipelines.errors import StoreWriteError
from pipelines.ingest import run_ingestion_sync
from server.context import retrieve_context
from sources.loader import SourceLoader

console = Console()
app = typer.Typer(help="DocGround CLI - documentation corpus for grounded answers")

state = {"config_path": None}

def _config() -> IngestConfig:
    config = load_ingest_config(state["config_path"])
    setup_logging_from_config(config)
    return config

def _retriever(config: IngestConfig) -> LexicalRetriever:
    return LexicalRetriever(CorpusStore(config.corpus_path))

@app.callback()
def main(config: Optional[Path] = typer.Option(None, "--config", help="Ingest config YAML")):
    """Global options."""
    state["config_path"] = str(config) if config else None

@app.command()
def crawl(
    source: List[str] = typer.Option([], "--source", "-s", help="Source names (default: all enabled)"),
    sources_dir: Optional[Path] = typer.Option(None, "--sources-dir", help="Directory of source YAML files"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", help="Page budget for this run"),
    no_js: bool = typer.Option(False, "--no-js", help="Fetch static HTML instead of rendering pages")
):
    """Crawl documentation sources and merge new chunks into the corpus"""
    config = _config()
    if no_js:
        config.set("crawl.render_js", False)

    loader = SourceLoader(sources_dir)
    if source:
        selected = [loader.load_source_config(name) for name in source]
        missing = [name for name, cfg in zip(source, selected) if cfg is None]
        if missing:
            console.print(f"❌ Unknown or invalid sources: {', '.join(missing)}", style="bold red")
            raise typer.Exit(1)
    else:
        selected = list(loader.get_enabled_sources().values())

    if not selected:
        console.print("❌ No enabled sources configured", style="bold red")
        raise typer.Exit(1)

    try:
        report = run_ingestion_sync(config, selected, max_pages=max_pages)
    except StoreWriteError as e:
        console.print(f"❌ Ingestion aborted, corpus not saved: {escape(str(e))}", style="bold red")
        raise typer.Exit(1)

    table = Table(title="📊 Crawl summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Resumed from queue", "yes" if report.resumed else "no")
    table.add_row("Pages fetched", str(report.stats.total_urls))
    table.add_row("Pages accepted", str(report.stats.successful))
    table.add_row("Pages rejected", str(report.stats.rejected))
    table.add_row("Failures", str(report.stats.failed))
    table.add_row("New chunks", str(report.new_chunks))
    table.add_row("Total chunks", str(report.total_chunks))
    table.add_row("Pending URLs", str(report.pending))
    console.print(table)

    for error in report.errors:
        console.print(escape(f"  • [{error.kind}] {error.url}: {error.message}"), style="yellow")

@app.command()
def search(
    q: str = typer.Argument(..., help="Search query"),
    k: Optional[int] = typer.Option(None, "--k", help="Number of results")
):
    """Query the documentation corpus"""
    config = _config()
    results = _retriever(config).search(q, config.default_k if k is None else k)

    console.print(f"\n🔍 Query: [bold]{escape(q)}[/bold]")
    if not results:
        console.print("No matching chunks.", style="dim")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("#", style="dim", width=3)
    table.add_column("Title / Section", style="bold")
    table.add_column("Content", style="")
    table.add_column("Score", justify="right", width=7)

    for i, result in enumerate(results, 1):
        chunk = result.chunk
        label = f"{chunk.title} / {chunk.section}" if chunk.section else chunk.title
        excerpt = chunk.content[:100] + "..." if len(chunk.content) > 100 else chunk.content
        table.add_row(str(i), escape(label), f"{escape(excerpt)}\n[dim]{escape(chunk.url)}[/dim]", f"{result.score:.1f}")

    console.print(table)

@app.command()
def context(
    q: str = typer.Argument(..., help="Latest user message"),
    k: Optional[int] = typer.Option(None, "--k", help="Number of sources")
):
    """Print the context block handed to the chat assistant"""
    config = _config()
    console.print(retrieve_context(_retriever(config), q, config.default_k if k is None else k), markup=False)

@app.command()
def sources(sources_dir: Optional[Path] = typer.Option(None, "--sources-dir", help="Directory of source YAML files")):
    """List configured crawl sources"""
    _config()
    configured = SourceLoader(sources_dir).load_all_sources()

    console.print("📚 Sources:")
    for name, cfg in configured.items():
        status = "enabled" if cfg.enabled else "disabled"
        console.print(f"  • {name} ({status}): {', '.join(cfg.base_urls)}")

@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8080, "--port")
):
    """Serve the retrieval API"""
    import uvicorn
    from server.rag_api import create_app

    config = _config()
    uvicorn.run(create_app(config), host=host, port=port)

if __name__ == "__main__":
    app()
