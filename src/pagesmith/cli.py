"""CLI interface for pagesmith."""

import asyncio
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pagesmith.assembly import DEFAULT_RECOMMENDED, DEFAULT_REQUIRED, PageAssembler
from pagesmith.config import PagesmithConfig, load_config, merge_cli_overrides
from pagesmith.content import ContentStateMachine
from pagesmith.context import (
    ContextAcquisitionOrchestrator,
    SiteChrome,
    SiteContextStore,
    SiteContextType,
    to_sse,
)
from pagesmith.db import Database
from pagesmith.errors import PagesmithError
from pagesmith.publishing import DnsTxtVerifier, DomainStore, PublishConflictResolver
from pagesmith.sections import SectionStore

app = typer.Typer(
    name="pagesmith",
    help="Acquire site context, assemble pages from sections and publish them.",
    no_args_is_help=True,
)
item_app = typer.Typer(help="Manage content items.", no_args_is_help=True)
section_app = typer.Typer(help="Manage the sections of a content item.", no_args_is_help=True)
domain_app = typer.Typer(help="Manage publish domains.", no_args_is_help=True)
context_app = typer.Typer(help="Manage stored site context.", no_args_is_help=True)
app.add_typer(item_app, name="item")
app.add_typer(section_app, name="section")
app.add_typer(domain_app, name="domain")
app.add_typer(context_app, name="context")

console = Console()

OwnerOption = Annotated[str, typer.Option("--owner", help="Acting owner id.")]


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from pagesmith import __version__

        console.print(f"pagesmith {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a pagesmith TOML config file."),
    ] = None,
    database_url: Annotated[
        Optional[str],
        typer.Option("--database-url", help="SQLAlchemy database URL."),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging.")] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """pagesmith - comparison pages from a customer's own site."""
    setup_logging(verbose)
    config = load_config(config_path)
    ctx.obj = merge_cli_overrides(config, database_url=database_url)


def _config(ctx: typer.Context) -> PagesmithConfig:
    return ctx.obj if isinstance(ctx.obj, PagesmithConfig) else load_config()


@contextmanager
def _database(ctx: typer.Context) -> Iterator[Database]:
    """Open the database for one command and report pagesmith errors."""
    try:
        with Database.from_config(_config(ctx).database) as db:
            yield db
    except PagesmithError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _split_types(value: Optional[str], default: tuple) -> list[str]:
    if value is None:
        return [str(t) for t in default]
    return [part.strip() for part in value.split(",") if part.strip()]


# ── Setup ────────────────────────────────────────────────────────


@app.command(name="init-db")
def init_db(ctx: typer.Context) -> None:
    """Create all tables."""
    with _database(ctx) as db:
        console.print(f"[green]Database ready:[/green] {db.url}")


# ── Context acquisition ──────────────────────────────────────────


@app.command()
def acquire(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="Target site URL.")],
    owner: OwnerOption,
    scope: Annotated[Optional[str], typer.Option("--scope", help="Project scope id.")] = None,
    sse: Annotated[bool, typer.Option("--sse", help="Print events as server-sent events.")] = False,
) -> None:
    """Scrape a site and store what was learned about it."""
    config = _config(ctx)

    async def _run(db: Database) -> bool:
        orchestrator = ContextAcquisitionOrchestrator(SiteContextStore(db), config=config.acquisition)
        ok = False
        async for event in orchestrator.acquire(url, owner, scope):
            if sse:
                typer.echo(to_sse(event), nl=False)
            else:
                colour = "red" if event.phase == "error" else "cyan"
                console.print(f"[{colour}]{event.progress:3d}%[/{colour}] {event.phase}: {event.message}")
            ok = event.phase == "complete"
        return ok

    with _database(ctx) as db:
        succeeded = asyncio.run(_run(db))
    if not succeeded:
        raise typer.Exit(1)


# ── Content items ────────────────────────────────────────────────


@item_app.command("create")
def item_create(
    ctx: typer.Context,
    owner: OwnerOption,
    title: Annotated[str, typer.Option("--title", help="Page title.")] = "",
    slug: Annotated[str, typer.Option("--slug", help="URL slug.")] = "",
    description: Annotated[str, typer.Option("--description", help="Meta description.")] = "",
    scope: Annotated[Optional[str], typer.Option("--scope", help="Project scope id.")] = None,
) -> None:
    """Create a planned content item."""
    with _database(ctx) as db:
        item = ContentStateMachine(db).create(owner, scope, title=title, slug=slug, description=description)
    console.print(f"[green]Created[/green] {item.id} ({item.status})")


@item_app.command("ready")
def item_ready(ctx: typer.Context, item_id: Annotated[str, typer.Argument()]) -> None:
    """Mark a planned item as ready for generation."""
    with _database(ctx) as db:
        item = ContentStateMachine(db).mark_ready(item_id)
    console.print(f"[green]{item.id}[/green] is {item.status}")


@item_app.command("show")
def item_show(ctx: typer.Context, item_id: Annotated[str, typer.Argument()]) -> None:
    """Show one content item."""
    with _database(ctx) as db:
        item = ContentStateMachine(db).items.require(item_id)
    data = item.model_dump(mode="json", exclude={"assembled_html"})
    data["assembled_html_chars"] = len(item.assembled_html or "")
    console.print_json(json.dumps(data))


@item_app.command("list")
def item_list(ctx: typer.Context, owner: OwnerOption) -> None:
    """List an owner's content items."""
    with _database(ctx) as db:
        items = ContentStateMachine(db).items.list(owner)
    table = Table(title=f"Content items for {owner}")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Slug")
    table.add_column("Status")
    for item in items:
        table.add_row(item.id, item.title, item.slug, item.status.value)
    console.print(table)


# ── Sections ─────────────────────────────────────────────────────


@section_app.command("add")
def section_add(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument()],
    section_id: Annotated[str, typer.Argument()],
    section_type: Annotated[str, typer.Option("--type", help="Section type, e.g. hero or faq.")],
    html: Annotated[Optional[str], typer.Option("--html", help="Section markup.")] = None,
    html_file: Annotated[
        Optional[Path],
        typer.Option("--file", help="Read section markup from a file.", exists=True, dir_okay=False),
    ] = None,
    metadata: Annotated[Optional[str], typer.Option("--metadata", help="Metadata as a JSON object.")] = None,
) -> None:
    """Store or replace one section."""
    if html_file is not None:
        html = html_file.read_text(encoding="utf-8")
    if html is None:
        console.print("[red]Error:[/red] one of --html or --file is required")
        raise typer.Exit(1)
    try:
        meta = json.loads(metadata) if metadata else None
    except json.JSONDecodeError as exc:
        console.print(f"[red]Error:[/red] --metadata is not valid JSON: {exc}")
        raise typer.Exit(1) from exc
    with _database(ctx) as db:
        section = SectionStore(db).upsert(item_id, section_id, section_type, html, meta)
    console.print(f"[green]Saved[/green] {section.section_id} ({section.section_type})")


@section_app.command("list")
def section_list(ctx: typer.Context, item_id: Annotated[str, typer.Argument()]) -> None:
    """List the sections of an item in page order."""
    with _database(ctx) as db:
        sections = SectionStore(db).list(item_id)
    table = Table(title=f"Sections of {item_id}")
    table.add_column("Section")
    table.add_column("Type")
    table.add_column("Position", justify="right")
    table.add_column("Chars", justify="right")
    for section in sections:
        table.add_row(
            section.section_id, section.section_type.value, str(section.position), str(len(section.html))
        )
    console.print(table)


@section_app.command("clear")
def section_clear(ctx: typer.Context, item_id: Annotated[str, typer.Argument()]) -> None:
    """Delete every stored section of an item."""
    with _database(ctx) as db:
        removed = SectionStore(db).clear(item_id)
    console.print(f"Removed {removed} section(s)")


# ── Assembly ─────────────────────────────────────────────────────


@app.command()
def assemble(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument()],
    required: Annotated[
        Optional[str], typer.Option("--required", help="Comma-separated required section types.")
    ] = None,
    recommended: Annotated[
        Optional[str], typer.Option("--recommended", help="Comma-separated recommended section types.")
    ] = None,
    page_type: Annotated[
        Optional[str], typer.Option("--page-type", help="alternative or listicle.")
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Also write the page here.")
    ] = None,
) -> None:
    """Assemble an item's sections into its final page."""
    config = _config(ctx)
    with _database(ctx) as db:
        result = PageAssembler(db, config.assembly).assemble(
            item_id,
            _split_types(required, DEFAULT_REQUIRED),
            _split_types(recommended, DEFAULT_RECOMMENDED),
            page_type=page_type,
        )
    if not result.success:
        console.print(f"[red]Error:[/red] {result.message}")
        raise typer.Exit(1)
    if result.missing_recommended:
        console.print(f"[yellow]Missing recommended:[/yellow] {', '.join(result.missing_recommended)}")
    if output is not None and result.html is not None:
        output.write_text(result.html, encoding="utf-8")
        console.print(f"Wrote {output}")
    console.print(f"[green]{result.message}[/green]")


@context_app.command("set-chrome")
def context_set_chrome(
    ctx: typer.Context,
    kind: Annotated[str, typer.Argument(help="header or footer.")],
    owner: OwnerOption,
    html: Annotated[Optional[str], typer.Option("--html", help="Markup to store.")] = None,
    html_file: Annotated[
        Optional[Path], typer.Option("--file", help="Read the markup from this file.")
    ] = None,
    scope: Annotated[Optional[str], typer.Option("--scope", help="Project scope id.")] = None,
) -> None:
    """Store the site header or footer placed around assembled pages."""
    if kind not in (SiteContextType.HEADER, SiteContextType.FOOTER):
        console.print(f"[red]Error:[/red] expected header or footer, got {kind!r}")
        raise typer.Exit(1)
    markup = html_file.read_text(encoding="utf-8") if html_file is not None else html
    if not markup:
        console.print("[red]Error:[/red] pass --html or --file")
        raise typer.Exit(1)
    with _database(ctx) as db:
        SiteContextStore(db).upsert(owner, scope, kind, SiteChrome(html=markup))
    console.print(f"[green]Saved[/green] {kind} ({len(markup)} chars)")


@context_app.command("list")
def context_list(
    ctx: typer.Context,
    owner: OwnerOption,
    scope: Annotated[Optional[str], typer.Option("--scope", help="Project scope id.")] = None,
) -> None:
    """List the stored site context fields of an owner."""
    with _database(ctx) as db:
        fields = SiteContextStore(db).list(owner, scope)
    table = Table(title=f"Site context for {owner}")
    table.add_column("Type")
    table.add_column("Updated")
    for field in fields:
        table.add_row(field.type.value, field.updated_at.isoformat(timespec="seconds"))
    console.print(table)


# ── Domains ──────────────────────────────────────────────────────


@domain_app.command("add")
def domain_add(ctx: typer.Context, name: Annotated[str, typer.Argument()], owner: OwnerOption) -> None:
    """Register a domain and print its verification token."""
    with _database(ctx) as db:
        domain = DomainStore(db).add(owner, name)
    console.print(f"[green]Registered[/green] {domain.name} as {domain.id}")
    console.print(f"Verification token: {domain.verification_token}")


@domain_app.command("verify")
def domain_verify(
    ctx: typer.Context, domain_id: Annotated[str, typer.Argument()], owner: OwnerOption
) -> None:
    """Check a domain's verification TXT record."""
    settings = _config(ctx).publish
    verifier = DnsTxtVerifier(settings.verification_prefix, settings.dns_timeout)
    with _database(ctx) as db:
        result = DomainStore(db, verifier).verify(domain_id, owner)
    if not result.verified:
        console.print(f"[yellow]Not verified:[/yellow] {result.details}")
        raise typer.Exit(1)
    console.print(f"[green]Verified[/green] {result.domain.name}")


@domain_app.command("subdir")
def domain_subdir(
    ctx: typer.Context,
    domain_id: Annotated[str, typer.Argument()],
    path: Annotated[str, typer.Argument()],
    owner: OwnerOption,
) -> None:
    """Register a path prefix on a verified domain."""
    with _database(ctx) as db:
        subdirectory = DomainStore(db).add_subdirectory(domain_id, owner, path)
    console.print(f"[green]Registered[/green] {subdirectory.path}")


@domain_app.command("list")
def domain_list(ctx: typer.Context, owner: OwnerOption) -> None:
    """List an owner's domains."""
    with _database(ctx) as db:
        domains = DomainStore(db).list_for_owner(owner)
    table = Table(title=f"Domains for {owner}")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Verified")
    for domain in domains:
        table.add_row(domain.id, domain.name, "yes" if domain.verified else "no")
    console.print(table)


# ── Publishing ───────────────────────────────────────────────────


@app.command()
def publish(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument()],
    domain_id: Annotated[str, typer.Option("--domain", help="Domain id.")],
    slug: Annotated[str, typer.Option("--slug", help="URL slug.")],
    owner: OwnerOption,
    path: Annotated[str, typer.Option("--path", help="Path prefix, e.g. /blog.")] = "/",
) -> None:
    """Publish a generated item on a verified domain."""
    config = _config(ctx)
    with _database(ctx) as db:
        result = PublishConflictResolver(db, config.publish).publish(item_id, domain_id, path, slug, owner)
    console.print(f"[green]Published:[/green] {result.published_url}")


@app.command()
def unpublish(ctx: typer.Context, item_id: Annotated[str, typer.Argument()], owner: OwnerOption) -> None:
    """Take a published item offline."""
    config = _config(ctx)
    with _database(ctx) as db:
        item = PublishConflictResolver(db, config.publish).unpublish(item_id, owner)
    console.print(f"[green]Unpublished[/green] {item.id} ({item.status})")
