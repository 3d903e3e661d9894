from pathlib import Path
import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from typing import Optional

from .config import load_config
from .generator import generate_snapshot, list_templates, load_snapshot, save_snapshot
from .log import configure_logging
from .nodes import default_registry
from .router import MessageRouter
from .validator import validate_snapshot_file
from .visualize import ascii_plan

app = typer.Typer(no_args_is_help=True, help="livegraph CLI — live-editable node graph engine")


@app.command()
def types():
    """List registered node types and their sockets."""
    registry = default_registry()
    table = Table(title="Node Types", show_lines=True)
    table.add_column("Type", style="bold")
    table.add_column("Inputs")
    table.add_column("Outputs")
    for type_id in registry.types():
        schema = registry.schema(type_id)
        table.add_row(type_id,
                      ", ".join(f"{k}: {v}" for k, v in schema.inputs.items()),
                      ", ".join(f"{k}: {v}" for k, v in schema.outputs.items()))
    rprint(table)


@app.command()
def generate(template: str = typer.Option(..., help=f"Template to use: {' | '.join(list_templates())}"),
             name: str = typer.Option("graph", help="Output filename (without .yaml)"),
             outdir: Path = typer.Option(Path("graphs"), help="Where to place the YAML"),
    ):
    """Write a starter graph snapshot from a packaged template."""
    try:
        snapshot = generate_snapshot(template)
    except ValueError as e:
        rprint(f"[bold red]{e}[/]")
        raise typer.Exit(code=1)
    outdir.mkdir(exist_ok=True, parents=True)
    outfile = outdir / f"{name}.yaml"
    save_snapshot(snapshot, outfile)
    rprint(Panel.fit(f"Saved template [bold]{template}[/] to [cyan]{outfile}[/]"))


@app.command()
def validate(file: Path):
    """Validate a graph snapshot (ids, types, sockets, single inputs, cycles)."""
    ok, messages = validate_snapshot_file(file, default_registry())
    table = Table(title="Validation Report", show_lines=True)
    table.add_column("Status", justify="center", style="bold")
    table.add_column("Message")
    for m in messages:
        status = "OK" if m.startswith("OK:") else "ERR"
        table.add_row(status, m)
    rprint(table)
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def explain(file: Path):
    """Print an ASCII plan of the graph in execution order."""
    ok, messages = validate_snapshot_file(file, default_registry())
    if not ok:
        for m in messages:
            if m.startswith("ERR:"):
                rprint(f"[red]{m}[/]")
        raise typer.Exit(code=1)
    print(ascii_plan(load_snapshot(file)))


@app.command()
def run(file: Path,
        ticks: int = typer.Option(1, help="Number of engine ticks to run."),
        messages: Optional[Path] = typer.Option(None, help="JSON-lines file of editor messages to replay."),
        config: Optional[Path] = typer.Option(None, help="Engine config YAML (default: ./livegraph.yaml).")):
    """Load a graph snapshot, replay editor messages and tick the engine."""
    from .runner import read_messages_file, run_snapshot_file
    try:
        cfg = load_config(config)
    except ValueError as e:
        rprint(f"[bold red]{e}[/]")
        raise typer.Exit(1)
    configure_logging(cfg.log_level)

    console = Console()

    def show(message):
        console.print(MessageRouter.encode(message), markup=False, highlight=False, soft_wrap=True)

    inbound = read_messages_file(messages) if messages else []
    ok = run_snapshot_file(file, default_registry(), messages=inbound, ticks=ticks, config=cfg,
                           send=show)
    if not ok:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
