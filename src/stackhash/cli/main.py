"""Typer CLI entrypoint and command definitions for stackhash."""

from pathlib import Path

import typer

from stackhash.core.defaults import DEFAULT_MAX_CHAIN_DEPTH

app = typer.Typer()


def _load_chain(file: str):
    from pydantic import ValidationError

    from stackhash.core.types import ErrorFrame

    chain_path = Path(file)
    if not chain_path.exists():
        typer.echo(f"File not found: {chain_path}", err=True)
        raise typer.Exit(code=1)

    try:
        return ErrorFrame.model_validate_json(chain_path.read_text("utf-8"))
    except ValidationError as exc:
        typer.echo(f"Invalid error chain in {chain_path}: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command("hash")
def hash_cmd(
    file: str = typer.Option(..., "--file", help="Path to an error chain JSON file"),
    first: bool = typer.Option(False, "--first", help="Print only the outermost signature"),
    max_depth: int = typer.Option(DEFAULT_MAX_CHAIN_DEPTH, min=1, help="Maximum chain levels to hash"),
) -> None:
    """Print the stack signature of every chain level, outermost first."""
    from stackhash.core.hashing import hex_hash, hex_hashes

    chain = _load_chain(file)
    if first:
        typer.echo(hex_hash(chain, max_depth=max_depth))
        return
    for signature in hex_hashes(chain, max_depth=max_depth):
        typer.echo(signature)


@app.command("render")
def render_cmd(
    file: str = typer.Option(..., "--file", help="Path to an error chain JSON file"),
    max_depth: int = typer.Option(DEFAULT_MAX_CHAIN_DEPTH, min=1, help="Maximum chain levels to hash"),
) -> None:
    """Print the error chain as a stack trace prefixed with signatures."""
    from stackhash.render.trace import render_trace

    chain = _load_chain(file)
    typer.echo(render_trace(chain, max_depth=max_depth), nl=False)
