"""schemata CLI — browse, edit and archive a versioned schema repository."""

from __future__ import annotations

import copy
import logging
import shutil
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from schemata import __version__

console = Console()


def _open_store(ctx: click.Context, load_all: bool = False):
    """Create a RepositoryStore from the CLI settings and load the registry."""
    from schemata.store.repository import RepositoryStore

    settings = ctx.obj["settings"]
    store = RepositoryStore(
        settings.document_store(),
        field_id_policy=settings.field_id_policy,
        active_context=settings.default_context,
    )
    if not store.load_registry():
        console.print(f"[red]Failed to load repository:[/] {store.error}")
        ctx.exit(1)
    if load_all:
        store.load_all_schemas()
    return store


def _save_store(ctx: click.Context, store) -> None:
    """Write the store back into the local document root."""
    from schemata.archive.codec import write_documents
    from schemata.store.document_store import FileDocumentStore

    settings = ctx.obj["settings"]
    if settings.base_url:
        console.print("[red]Cannot write to an HTTP document store; use --root.[/]")
        ctx.exit(1)
    count = write_documents(store.snapshot(), FileDocumentStore(settings.root))
    store.mark_saved()
    console.print(f"  [green]Saved[/] {count} files to {settings.root}")


@click.group()
@click.version_option(version=__version__)
@click.option("--root", "-r", default=None, help="Local schemata folder")
@click.option("--url", "-u", default=None, help="Base URL of a served schemata folder")
@click.option("--config", "config_path", default=None, help="Path to schemata.yaml")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx: click.Context, root: str | None, url: str | None, config_path: str | None, verbose: bool):
    """schemata — editor for versioned JSON metadata schemas.

    Contexts hold versions, versions hold schema documents, documents hold
    groups and fields.  The whole tree can be exported to and imported from
    a ZIP archive.
    """
    from schemata.config import load_settings

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    settings = load_settings(config_path)
    if root:
        settings.root = root
        settings.base_url = ""
    if url:
        settings.base_url = url
    ctx.obj = {"settings": settings}


# ── Setup ────────────────────────────────────────────────────────────


@main.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False))
@click.argument("target", default="public/schemata")
def setup(source: str, target: str):
    """Copy an existing schemata folder into place (one-shot)."""
    console.print("\n[bold blue]schemata[/] — Setup")
    console.print(f"  Source: {source}")
    console.print(f"  Target: {target}\n")

    if not (Path(source) / "context-registry.json").is_file():
        console.print("[yellow]Warning:[/] source has no context-registry.json")

    try:
        shutil.copytree(source, target, dirs_exist_ok=True)
    except OSError as e:
        console.print(f"[red]Copy failed:[/] {e}")
        sys.exit(1)
    console.print("[green]Schemata copied.[/]")


# ── Browse ───────────────────────────────────────────────────────────


@main.command()
@click.pass_context
def contexts(ctx: click.Context):
    """List the contexts in the registry."""
    store = _open_store(ctx)

    table = Table(title=f"Contexts ({len(store.registry.contexts)})")
    table.add_column("Name", style="cyan")
    table.add_column("Display name")
    table.add_column("Default version")
    table.add_column("Versions", justify="right")
    table.add_column("Based on", style="dim")

    for name, entry in store.registry.contexts.items():
        manifest = store.manifests.get(name)
        versions = str(len(manifest.versions)) if manifest else "[red]-[/]"
        marker = " *" if name == store.registry.default_context else ""
        table.add_row(name + marker, entry.name, entry.default_version, versions, entry.based_on or "")

    console.print(table)


@main.command()
@click.argument("context_name")
@click.pass_context
def versions(ctx: click.Context, context_name: str):
    """List the versions of a context with their changelog."""
    from schemata.models.context import version_sort_key

    store = _open_store(ctx)
    manifest = store.manifests.get(context_name)
    if manifest is None:
        console.print(f"[red]No manifest for context '{context_name}'.[/]")
        ctx.exit(1)

    for version in sorted(manifest.versions, key=version_sort_key, reverse=True):
        entry = manifest.versions[version]
        default = " [green](default)[/]" if entry.is_default else ""
        console.print(f"\n[bold]v{version}[/]{default}  released {entry.release_date}")
        console.print(f"  schemas: {', '.join(entry.schemas) or '-'}")
        for change in entry.changelog or []:
            console.print(f"  [dim]{change.date[:10]}[/] ({change.type}) {escape(change.description)}")


@main.command()
@click.argument("context_name")
@click.argument("version")
@click.pass_context
def schemas(ctx: click.Context, context_name: str, version: str):
    """Summarize the schema documents of one version."""
    from schemata.models.localized import text_for

    store = _open_store(ctx, load_all=True)
    manifest = store.manifests.get(context_name)
    entry = manifest.versions.get(version) if manifest else None
    if entry is None:
        console.print(f"[red]Unknown version {context_name}@{version}.[/]")
        ctx.exit(1)

    store.set_active_context(context_name)
    store.set_active_version(version)

    table = Table(title=f"{context_name}@{version}")
    table.add_column("File", style="cyan")
    table.add_column("Profile")
    table.add_column("Groups", justify="right")
    table.add_column("Fields", justify="right")
    table.add_column("Groups (labels)", style="dim")

    for schema_file in entry.schemas:
        schema = store.get_schema(schema_file)
        if schema is None:
            table.add_row(schema_file, "[red]missing[/]", "", "", "")
            continue
        table.add_row(
            schema_file,
            schema.profile_id,
            str(len(schema.groups)),
            str(len(schema.fields)),
            ", ".join(text_for(g.label) for g in schema.groups)[:60],
        )

    console.print(table)


@main.command(name="content-types")
@click.option("--context", "context_name", default=None, help="Context (default: registry default)")
@click.option("--version", "version", default=None, help="Version (default: context default)")
@click.pass_context
def content_types(ctx: click.Context, context_name: str | None, version: str | None):
    """List the content types registered in core.json."""
    from schemata.models.context import CORE_SCHEMA_FILE

    store = _open_store(ctx)
    if context_name:
        store.set_active_context(context_name)
    if version:
        store.set_active_version(version)
    store.set_active_schema(CORE_SCHEMA_FILE)

    types = store.get_content_types()
    if not types:
        console.print("[yellow]No content types found.[/]")
        return

    table = Table(title=f"Content types ({store.active_context}@{store.active_version})")
    table.add_column("Schema file", style="cyan")
    table.add_column("Icon")
    table.add_column("Label (de)")
    table.add_column("Label (en)")
    for t in types:
        table.add_row(t.schema_file, t.icon, t.label.get("de", ""), t.label.get("en", ""))
    console.print(table)


# ── Edit ─────────────────────────────────────────────────────────────


@main.command(name="create-context")
@click.argument("name")
@click.argument("display_name")
@click.option("--based-on", default="default", help="Context to copy schemas from")
@click.option("--schema", "-s", "schema_files", multiple=True, help="Schema file to take over (repeatable)")
@click.pass_context
def create_context(ctx: click.Context, name: str, display_name: str, based_on: str, schema_files: tuple):
    """Create a context, copying selected schemas from a base context."""
    from schemata.models.context import CORE_SCHEMA_FILE, INITIAL_VERSION
    from schemata.store.keys import cache_key
    from schemata.store.naming import context_slug

    store = _open_store(ctx, load_all=True)
    slug = context_slug(name)
    if slug in store.registry.contexts:
        console.print(f"[red]Context '{slug}' already exists.[/]")
        ctx.exit(1)

    selected = [CORE_SCHEMA_FILE] + [s for s in schema_files if s != CORE_SCHEMA_FILE]
    base_entry = store.registry.entry(based_on)
    base_version = base_entry.default_version if base_entry else None

    store.create_context(slug, display_name, f"{based_on}@{base_version}" if base_version else None, selected)

    # The store does not copy documents; materialize them here.
    copied = 0
    for schema_file in selected:
        base = store.schemas.get(cache_key(based_on, base_version or "", schema_file))
        if base is None:
            console.print(f"  [yellow]![/] {schema_file} not found in {based_on}")
            continue
        clone = copy.deepcopy(base)
        clone.version = INITIAL_VERSION
        schemas = dict(store.schemas)
        schemas[cache_key(slug, INITIAL_VERSION, schema_file)] = clone
        store.schemas = schemas
        copied += 1

    console.print(f"\n[bold blue]schemata[/] — Created context [cyan]{slug}[/] ({copied} schemas)")
    _save_store(ctx, store)


@main.command(name="create-version")
@click.argument("context_name")
@click.argument("version")
@click.option("--from", "based_on", default=None, help="Base version (default: default/latest)")
@click.pass_context
def create_version(ctx: click.Context, context_name: str, version: str, based_on: str | None):
    """Create a new version of a context from an existing one."""
    store = _open_store(ctx, load_all=True)
    if not store.create_version(context_name, version.strip(), based_on):
        console.print(f"[red]Could not create version:[/] {store.error or 'unknown context'}")
        ctx.exit(1)
    console.print(f"\n[bold blue]schemata[/] — Created {context_name}@{version}")
    _save_store(ctx, store)


@main.command(name="import-vocabulary")
@click.argument("context_name")
@click.argument("version")
@click.argument("schema_file")
@click.argument("field_id")
@click.argument("source")
@click.option("--append", is_flag=True, help="Add to existing concepts instead of replacing them")
@click.pass_context
def import_vocabulary(
    ctx: click.Context,
    context_name: str,
    version: str,
    schema_file: str,
    field_id: str,
    source: str,
    append: bool,
):
    """Import SKOS concepts into a field's vocabulary.

    SOURCE is a SKOHUB URL or a local JSON file.
    """
    from schemata.vocab.skos import VocabularyFormatError, fetch_vocabulary, parse_json_text

    store = _open_store(ctx)
    store.set_active_context(context_name)
    store.set_active_version(version)
    store.set_active_schema(schema_file)
    if store.active_schema() is None:
        console.print(f"[red]Schema not available:[/] {store.error}")
        ctx.exit(1)

    try:
        if source.startswith(("http://", "https://")):
            raw = fetch_vocabulary(source)
            source_url = source
        else:
            raw = parse_json_text(Path(source).read_text(encoding="utf-8"))
            source_url = None
    except (VocabularyFormatError, OSError) as e:
        console.print(f"[red]Import failed:[/] {e}")
        ctx.exit(1)

    count = store.import_vocabulary(schema_file, field_id, raw, replace_existing=not append, source_url=source_url)
    if count == 0:
        console.print(f"[yellow]Nothing imported:[/] {store.error or 'field not found'}")
        ctx.exit(1)
    console.print(f"  [green]v[/] {count} concepts imported into {field_id}")
    _save_store(ctx, store)


# ── Archive ──────────────────────────────────────────────────────────


@main.command()
@click.option("--output", "-o", default=None, help="Archive path (default: schemata-export-<date>.zip)")
@click.pass_context
def export(ctx: click.Context, output: str | None):
    """Export the whole repository as a ZIP archive."""
    from schemata.archive.codec import export_filename

    store = _open_store(ctx)
    data = store.export_as_zip()
    if data is None:
        console.print("[red]Nothing to export.[/]")
        ctx.exit(1)

    path = Path(output or export_filename())
    path.write_bytes(data)
    console.print(f"\n[green]Archive written to:[/] {path} ({len(data)} bytes, {len(store.schemas)} schemas)")


@main.command(name="import")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False))
@click.argument("target")
def import_archive(archive: str, target: str):
    """Unpack a schemata archive into a local folder."""
    from schemata.archive.codec import read_archive, write_documents
    from schemata.store.document_store import FileDocumentStore

    contents = read_archive(Path(archive).read_bytes())
    if contents is None:
        console.print("[red]Invalid archive (no context-registry.json or unreadable).[/]")
        sys.exit(1)

    count = write_documents(contents, FileDocumentStore(target))
    console.print(
        f"\n[green]Imported[/] {len(contents.manifests)} contexts, "
        f"{len(contents.schemas)} schemas ({count} files) into {target}"
    )


if __name__ == "__main__":
    main()
