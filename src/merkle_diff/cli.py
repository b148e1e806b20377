"""CLI for Merkle Diff."""

import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config import TreeConfig, get_config_path, load_config
from .diff import TreeDiff, diff_trees, divergent_byte_ranges
from .errors import MerkleTreeError
from .hashing import hexify
from .sources import FileChunkSource
from .tree import MerkleTree

console = Console()
error_console = Console(stderr=True)


def setup_logging(level: str) -> None:
    """Route library logging to stderr through rich."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def fail(message: str) -> None:
    """Print an error and exit with status 1."""
    error_console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def resolve_config(
    ctx: click.Context,
    chunk_size: int | None,
    branching_factor: int | None,
) -> TreeConfig:
    """Apply command-line overrides on top of the loaded config."""
    config: TreeConfig = ctx.obj["config"]
    data = config.model_dump()
    if chunk_size is not None:
        data["chunk_size"] = chunk_size
    if branching_factor is not None:
        data["branching_factor"] = branching_factor
    try:
        return TreeConfig.model_validate(data)
    except ValidationError as e:
        fail(str(e))


def build_file_tree(path: Path, config: TreeConfig) -> tuple[FileChunkSource, MerkleTree]:
    """Chunk a file and build its tree, exiting on failure."""
    try:
        source = FileChunkSource(path, config.chunk_size, hashing_scheme=config.scheme)
        tree = MerkleTree.from_source(source, branching_factor=config.branching_factor)
    except (MerkleTreeError, OSError) as e:
        fail(f"{path}: {e}")
    return source, tree


def mismatch_rows(result: TreeDiff) -> list[tuple[str, str, str]]:
    """Table rows of (level, mismatch count, positions) for a tree diff."""
    return [
        (str(level_index), str(len(positions)), ", ".join(map(str, positions)))
        for level_index, positions in result.levels.items()
    ]


chunk_size_option = click.option(
    "--chunk-size",
    type=int,
    default=None,
    help="Bytes per leaf chunk (default: from config)",
)
branching_factor_option = click.option(
    "--branching-factor",
    "-b",
    type=int,
    default=None,
    help="Maximum children per node (default: from config)",
)


@click.group()
@click.version_option(version=__version__, prog_name="mtree")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Path to a JSON config file (default: ./mtree.json if present)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, log_level: str) -> None:
    """Merkle Diff - Compare large files by exchanging hash tree levels."""
    setup_logging(log_level)
    if config_path is None:
        config_path = get_config_path(Path.cwd())
    try:
        config = load_config(config_path)
    except (ValidationError, json.JSONDecodeError) as e:
        fail(f"Invalid configuration: {e}")
    ctx.obj = {"config": config}


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@chunk_size_option
@branching_factor_option
@click.pass_context
def inspect(
    ctx: click.Context,
    file: Path,
    chunk_size: int | None,
    branching_factor: int | None,
) -> None:
    """Build a tree over FILE and show its shape."""
    config = resolve_config(ctx, chunk_size, branching_factor)
    source, tree = build_file_tree(file, config)

    table = Table(title=f"Merkle Tree: {file.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("File size", str(source.file_size))
    table.add_row("Chunk size", str(source.chunk_size))
    table.add_row("Leaves", str(tree.leaf_count))
    table.add_row("Nodes", str(tree.node_count))
    table.add_row("Depth", str(tree.depth))
    table.add_row("Branching factor", str(tree.branching_factor))
    table.add_row("Hashing scheme", tree.hashing_scheme.value)
    table.add_row("Root hash", hexify(tree.root.hash))

    console.print(table)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--level", "-l", type=int, default=None, help="Only show this level (0 is the root)")
@chunk_size_option
@branching_factor_option
@click.pass_context
def levels(
    ctx: click.Context,
    file: Path,
    level: int | None,
    chunk_size: int | None,
    branching_factor: int | None,
) -> None:
    """Print the hashes of each level of FILE's tree."""
    config = resolve_config(ctx, chunk_size, branching_factor)
    _, tree = build_file_tree(file, config)

    indices = range(tree.depth) if level is None else [level]
    for index in indices:
        try:
            hashes = tree.get_hashes_at_level(index)
        except MerkleTreeError as e:
            fail(str(e))
        console.print(f"[bold]Level {index}[/bold] [dim]({len(hashes)} nodes)[/dim]")
        for digest in hashes:
            console.print(f"  {hexify(digest)}")


@main.command()
@click.argument("file_a", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("file_b", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@chunk_size_option
@branching_factor_option
@click.pass_context
def diff(
    ctx: click.Context,
    file_a: Path,
    file_b: Path,
    chunk_size: int | None,
    branching_factor: int | None,
) -> None:
    """Locate the chunks of FILE_A that differ from FILE_B.

    Byte ranges are printed inclusive of both ends.
    """
    config = resolve_config(ctx, chunk_size, branching_factor)
    source_a, tree_a = build_file_tree(file_a, config)
    source_b, tree_b = build_file_tree(file_b, config)

    # Small files are chunked with a reduced size, so leaves may not line up
    if source_a.chunk_size != source_b.chunk_size:
        fail(
            f"Files were chunked at different sizes ({source_a.chunk_size} vs {source_b.chunk_size}), "
            "leaves cannot be compared. Use a smaller --chunk-size."
        )

    if tree_a.root.hash == tree_b.root.hash:
        console.print("[green]Files are identical.[/green]")
        return

    try:
        result = diff_trees(tree_a, tree_b)
    except MerkleTreeError as e:
        fail(str(e))

    table = Table(title="Mismatches by Level")
    table.add_column("Level", style="cyan", justify="right")
    table.add_column("Mismatches", justify="right")
    table.add_column("Positions")
    for row in mismatch_rows(result):
        table.add_row(*row)
    console.print(table)

    ranges = divergent_byte_ranges(result, source_a)
    console.print(f"[yellow]{len(result.leaves)} divergent chunk(s)[/yellow]")
    for chunk in ranges:
        console.print(f"  chunk {chunk.index}: bytes {chunk.start}-{chunk.end - 1}")


if __name__ == "__main__":
    main()
