"""
Command-line interface for orm_synth.

Provides scan, tables, names and snapshot commands. Live databases are read
through a SQLAlchemy URL; offline runs read a schema snapshot file.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from orm_synth import __version__
from orm_synth.errors import IntrospectionError
from orm_synth.metadata.snapshot import SnapshotMetadataSource, snapshot_from_source
from orm_synth.metadata.source import MetadataSource
from orm_synth.models import FkMode, NamingOverrides, RelationFetch, ResolvedSchema
from orm_synth.modeling.naming import NamingResolver, load_naming_overrides_or_default
from orm_synth.modeling.pipeline import ModelPipeline

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _parse_tables(tables: Optional[str]) -> Optional[List[str]]:
    if not tables:
        return None
    return [t.strip() for t in tables.split(",") if t.strip()]


@contextmanager
def open_source(
    url: Optional[str],
    snapshot: Optional[Path],
    oracle_dictionary: bool = False,
) -> Iterator[MetadataSource]:
    """
    Open the metadata boundary selected on the command line.

    Args:
        url: SQLAlchemy database URL
        snapshot: Schema snapshot file (used instead of a URL)
        oracle_dictionary: Read Oracle data dictionary views directly
            instead of going through the SQLAlchemy inspector
    """
    if snapshot is not None:
        yield SnapshotMetadataSource.from_file(snapshot)
        return

    from sqlalchemy import create_engine

    engine = create_engine(url)
    try:
        if oracle_dictionary:
            from orm_synth.metadata.oracle import OracleMetadataSource

            raw = engine.raw_connection()
            try:
                yield OracleMetadataSource(raw)
            finally:
                raw.close()
        else:
            from orm_synth.metadata.sqlalchemy_source import SqlAlchemyMetadataSource

            with engine.connect() as conn:
                yield SqlAlchemyMetadataSource(conn)
    finally:
        engine.dispose()


def _check_source_options(url: Optional[str], snapshot: Optional[Path]) -> None:
    if bool(url) == bool(snapshot):
        raise click.UsageError("Provide exactly one of --url or --snapshot")


def _source_options(fn):
    fn = click.option(
        "--oracle-dictionary",
        is_flag=True,
        help="Read Oracle ALL_* dictionary views directly (with an oracle+oracledb URL)",
    )(fn)
    fn = click.option(
        "--snapshot",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="Schema snapshot file (YAML/JSON) to read instead of a live database",
    )(fn)
    fn = click.option(
        "--url",
        type=str,
        default=None,
        help="SQLAlchemy database URL (e.g. postgresql+psycopg2://user@host/db)",
    )(fn)
    return fn


def _dump(data: dict, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(data, indent=2)
    return yaml.safe_dump(data, sort_keys=False)


def _print_schema(result: ResolvedSchema) -> None:
    entity_table = Table(title=f"Entities ({result.vendor.value})")
    entity_table.add_column("Table", style="cyan")
    entity_table.add_column("Entity", style="green")
    entity_table.add_column("Identifier", style="yellow")
    entity_table.add_column("Fields", justify="right")
    entity_table.add_column("Relations", justify="right")
    entity_table.add_column("Inverse", justify="right")

    for entity in result.entities:
        identifier = entity.identifier
        if identifier.is_composite:
            id_desc = f"{identifier.id_class_name} ({len(identifier.id_fields)} cols)"
        elif identifier.field_name:
            id_desc = f"{identifier.field_name}: {identifier.abstract_type.value}"
        else:
            id_desc = "-"
        entity_table.add_row(
            entity.model.full_name,
            entity.entity_name,
            id_desc,
            str(len(entity.fields)),
            str(len(entity.relations)),
            str(len(entity.inverse_relations)),
        )
    console.print(entity_table)

    relation_rows: List[Tuple[str, ...]] = []
    for entity in result.entities:
        for rel in entity.relations:
            relation_rows.append((
                f"{entity.entity_name}.{rel.field_name}",
                rel.target_entity,
                rel.cardinality.value,
                rel.join_column,
            ))
        for inv in entity.inverse_relations:
            target = f"List[{inv.child_entity}]" if inv.is_collection else inv.child_entity
            relation_rows.append((
                f"{entity.entity_name}.{inv.field_name}",
                target,
                f"inverse {inv.cardinality.value}",
                inv.join_column,
            ))

    if relation_rows:
        rel_table = Table(title="Relations")
        rel_table.add_column("Field", style="cyan")
        rel_table.add_column("Target", style="green")
        rel_table.add_column("Cardinality", style="yellow")
        rel_table.add_column("Join Column")
        for row in relation_rows:
            rel_table.add_row(*row)
        console.print(rel_table)

    for diagnostic in result.diagnostics:
        console.print(f"[yellow]Warning: {diagnostic}[/yellow]")


@click.group()
@click.version_option(version=__version__, prog_name="orm-synth")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """
    ORM Synth - Relational Schema to Object-Relational Model

    Introspect a database schema and resolve entities, fields and relations.
    """
    setup_logging(verbose)


@cli.command()
@_source_options
@click.option("--catalog", type=str, default=None, help="Catalog name")
@click.option("--schema", type=str, default=None, help="Schema name")
@click.option(
    "--tables",
    type=str,
    default=None,
    help="Comma-separated list of table names (all tables if not provided)",
)
@click.option(
    "--naming-file",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML file with entity/column naming overrides",
)
@click.option(
    "--fk-mode",
    type=click.Choice([m.value for m in FkMode]),
    default=FkMode.RELATION.value,
    help="Expose foreign keys as relations or keep them scalar",
)
@click.option(
    "--fetch",
    type=click.Choice([f.value for f in RelationFetch]),
    default=RelationFetch.LAZY.value,
    help="Fetch strategy for single-valued relations",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format",
)
def scan(
    url: Optional[str],
    snapshot: Optional[Path],
    oracle_dictionary: bool,
    catalog: Optional[str],
    schema: Optional[str],
    tables: Optional[str],
    naming_file: Optional[Path],
    fk_mode: str,
    fetch: str,
    output_format: str,
) -> None:
    """
    Resolve the object-relational model of a schema.

    Examples:

        # Offline, from a snapshot
        orm-synth scan --snapshot schema.yaml --naming-file naming.yaml

        # Live PostgreSQL schema as JSON
        orm-synth scan --url postgresql+psycopg2://app@localhost/shop \\
            --schema public --format json

        # Oracle through the data dictionary
        orm-synth scan --url oracle+oracledb://scott@db:1521/?service_name=ORCL \\
            --schema SCOTT --oracle-dictionary
    """
    from sqlalchemy.exc import SQLAlchemyError

    _check_source_options(url, snapshot)
    overrides = load_naming_overrides_or_default(naming_file)

    if output_format == "table":
        console.print("[bold blue]ORM Synth Scan[/bold blue]")
        console.print(f"Source: {snapshot or url}")

    try:
        with open_source(url, snapshot, oracle_dictionary) as source:
            pipeline = ModelPipeline(
                source,
                overrides=overrides,
                fk_mode=FkMode(fk_mode),
                fetch=RelationFetch(fetch),
            )
            result = pipeline.run(catalog=catalog, schema=schema, tables=_parse_tables(tables))
    except (IntrospectionError, SQLAlchemyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if output_format == "table":
        _print_schema(result)
    else:
        click.echo(_dump(result.to_dict(), output_format))


@cli.command()
@_source_options
@click.option("--catalog", type=str, default=None, help="Catalog name")
@click.option("--schema", type=str, default=None, help="Schema name")
def tables(
    url: Optional[str],
    snapshot: Optional[Path],
    oracle_dictionary: bool,
    catalog: Optional[str],
    schema: Optional[str],
) -> None:
    """List tables visible to the metadata source."""
    from sqlalchemy.exc import SQLAlchemyError

    from orm_synth.metadata.introspector import SchemaIntrospector

    _check_source_options(url, snapshot)

    try:
        with open_source(url, snapshot, oracle_dictionary) as source:
            introspector = SchemaIntrospector(source)
            vendor = introspector.vendor
            table_names = introspector.list_tables(catalog, schema)
    except (IntrospectionError, SQLAlchemyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"Tables ({vendor.value})")
    table.add_column("Table", style="cyan")
    table.add_column("Entity", style="green")
    naming = NamingResolver()
    for name in table_names:
        table.add_row(name, naming.resolve_entity_name(name))
    console.print(table)


@cli.command()
@click.argument("table_name")
@click.argument("columns", nargs=-1)
@click.option(
    "--naming-file",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML file with entity/column naming overrides",
)
def names(table_name: str, columns: Tuple[str, ...], naming_file: Optional[Path]) -> None:
    """
    Preview entity and field names for a physical table and its columns.

    Example:

        orm-synth names intervention_subcategories SUBCATEGORY_ID PBSCode
    """
    overrides = load_naming_overrides_or_default(naming_file) if naming_file else NamingOverrides()
    naming = NamingResolver(overrides)

    console.print(f"Entity: [green]{naming.resolve_entity_name(table_name)}[/green]")
    if not columns:
        return

    table = Table(title=f"Fields of {table_name}")
    table.add_column("Column", style="cyan")
    table.add_column("Field", style="green")
    for column in columns:
        table.add_row(column, naming.resolve_column_name(table_name, column))
    console.print(table)


@cli.command()
@click.option("--url", type=str, required=True, help="SQLAlchemy database URL")
@click.option(
    "--oracle-dictionary",
    is_flag=True,
    help="Read Oracle ALL_* dictionary views directly (with an oracle+oracledb URL)",
)
@click.option("--catalog", type=str, default=None, help="Catalog name")
@click.option("--schema", type=str, default=None, help="Schema name")
@click.option(
    "--tables",
    type=str,
    default=None,
    help="Comma-separated list of table names (all tables if not provided)",
)
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Output path for the snapshot YAML",
)
def snapshot(
    url: str,
    oracle_dictionary: bool,
    catalog: Optional[str],
    schema: Optional[str],
    tables: Optional[str],
    out: Path,
) -> None:
    """Capture a schema snapshot for offline scans."""
    from sqlalchemy.exc import SQLAlchemyError

    try:
        with open_source(url, None, oracle_dictionary) as source:
            data = snapshot_from_source(source, catalog, schema, _parse_tables(tables))
    except (IntrospectionError, SQLAlchemyError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)

    console.print(f"[green]Snapshot of {len(data['tables'])} table(s) saved to: {out}[/green]")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
