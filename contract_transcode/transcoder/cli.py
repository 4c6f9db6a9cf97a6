"""Command-line interface for contract call transcoding."""

from __future__ import annotations

import json
import logging
import sys
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from contract_transcode.codec.value import Value, to_document, to_text
from contract_transcode.errors import TranscodeError
from contract_transcode.transcoder.metadata import load_metadata
from contract_transcode.transcoder.selector import from_hex, to_hex

if TYPE_CHECKING:
    from contract_transcode.transcoder.messages import MessageSpec
    from contract_transcode.transcoder.metadata import ContractMetadata

console = Console()
err_console = Console(stderr=True)

metadata_option = click.option(
    "--metadata",
    "-m",
    "metadata_path",
    required=True,
    envvar="CONTRACT_METADATA",
    type=click.Path(exists=True, dir_okay=False),
    help="Contract metadata JSON or .contract bundle",
)


def _fail(exc: TranscodeError) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}", highlight=False)
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool) -> None:
    """Encode and decode smart contract calls."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


@cli.command()
@metadata_option
@click.option("--message", "-x", "name", required=True, help="Message label or selector")
@click.option("--constructor", is_flag=True, help="Look the name up among constructors")
@click.argument("args", nargs=-1)
def encode(metadata_path: str, name: str, constructor: bool, args: tuple[str, ...]) -> None:
    """Encode a call: selector followed by the encoded ARGS."""
    try:
        transcoder = load_metadata(metadata_path).transcoder()
        if constructor:
            data = transcoder.encode_constructor(name, list(args))
        else:
            data = transcoder.encode_call(name, list(args))
    except TranscodeError as exc:
        _fail(exc)
        return
    click.echo(to_hex(data))


def _print_value(value: Value, output_json: bool) -> None:
    if output_json:
        click.echo(json.dumps(to_document(value), indent=2))
    else:
        click.echo(to_text(value, indent=2))


def _warn_trailing(trailing: bytes) -> None:
    if trailing:
        err_console.print(
            f"[yellow]Warning:[/yellow] {len(trailing)} trailing bytes {to_hex(trailing)}",
            highlight=False,
        )


@cli.command()
@metadata_option
@click.option(
    "--type",
    "-t",
    "kind",
    type=click.Choice(["message", "constructor", "event", "return"]),
    default="message",
    help="What the data encodes",
)
@click.option("--name", "-n", default=None, help="Event or message label for event/return data")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.argument("data")
def decode(metadata_path: str, kind: str, name: str | None, output_json: bool, data: str) -> None:
    """Decode hex DATA."""
    try:
        transcoder = load_metadata(metadata_path).transcoder()
        raw = from_hex(data)
        if kind in ("event", "return"):
            if name is None:
                raise click.UsageError(f"--name is required to decode {kind} data")
            if kind == "event":
                decoded = transcoder.decode_event(raw, name)
            else:
                decoded = transcoder.decode_return(raw, name)
            value, trailing = decoded.value, decoded.trailing
        else:
            if kind == "constructor":
                call = transcoder.decode_constructor(raw)
            else:
                call = transcoder.decode_call(raw)
            value, trailing = call.as_value(), call.trailing
    except TranscodeError as exc:
        _fail(exc)
        return

    _print_value(value, output_json)
    _warn_trailing(trailing)


def _signature(spec: MessageSpec) -> str:
    args = ", ".join(f"{a.name}: {a.type_name or a.type_id}" for a in spec.args)
    return f"{spec.label}({args})"


def _entries_table(title: str, entries: tuple[MessageSpec, ...]) -> Table:
    table = Table(title=title, show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Selector", style="green", no_wrap=True)
    table.add_column("Signature", style="white")
    table.add_column("Flags", style="dim")
    for spec in entries:
        flags = [f for f, on in (("mut", spec.mutates), ("payable", spec.payable)) if on]
        table.add_row(to_hex(spec.selector), _signature(spec), " ".join(flags))
    return table


def _output_json(metadata: ContractMetadata) -> None:
    catalog = metadata.catalog

    def entry(spec: MessageSpec) -> dict:
        return {
            "label": spec.label,
            "selector": to_hex(spec.selector),
            "args": [{"label": a.name, "type": a.type_id} for a in spec.args],
            "returnType": spec.return_type,
            "mutates": spec.mutates,
            "payable": spec.payable,
        }

    data = {
        "name": metadata.name,
        "types": len(metadata.registry),
        "constructors": [entry(c) for c in catalog.constructors],
        "messages": [entry(m) for m in catalog.messages],
        "events": [
            {
                "label": e.label,
                "fields": [
                    {"label": f.name, "type": f.type_id, "indexed": f.indexed} for f in e.fields
                ],
            }
            for e in catalog.events
        ],
    }
    print(json.dumps(data, indent=2))


@cli.command()
@metadata_option
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(metadata_path: str, output_json: bool) -> None:
    """List the constructors, messages and events of a contract."""
    try:
        metadata = load_metadata(metadata_path)
    except TranscodeError as exc:
        _fail(exc)
        return

    if output_json:
        _output_json(metadata)
        return

    catalog = metadata.catalog
    console.print(f"[bold cyan]{metadata.name or 'Contract'}[/bold cyan]")
    console.print(f"{len(metadata.registry)} types")
    console.print()
    console.print(_entries_table("Constructors", catalog.constructors))
    console.print()
    console.print(_entries_table("Messages", catalog.messages))
    console.print()

    events = Table(title="Events", show_header=True, box=None, padding=(0, 2, 0, 0))
    events.add_column("Name", style="white", no_wrap=True)
    events.add_column("Fields", style="dim")
    for event in catalog.events:
        fields = ", ".join(
            f"{'#' if f.indexed else ''}{f.name}: {f.type_name or f.type_id}" for f in event.fields
        )
        events.add_row(event.label, fields)
    console.print(events)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
