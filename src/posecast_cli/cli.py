from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .gen.config import CONFIG_FILENAME, ConfigError, write_default_config
from .gen.descriptors import ExtractionError, analyze_slot
from .gen.orchestrator import BatchError, BatchOrchestrator, BatchResult
from .gen.provenance import save_slot
from .gen.registry import ProviderRegistry
from .gen.scenes import EmptySceneList
from .gen.types import ResultSlot, Role, SlotStatus
from .sampling import RandomChoice
from .schema import BatchTrigger
from .session import SESSION_FILENAME, Session

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()

_session_path = Path(SESSION_FILENAME)
_config_path: Optional[Path] = None


@app.callback()
def main(
    session: Path = typer.Option(Path(SESSION_FILENAME), "--session", help="Session file"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to posecast.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    global _session_path, _config_path
    _session_path = session
    _config_path = config
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _fail(message: str, code: int) -> typer.Exit:
    console.print(f"[bold red]{message}[/bold red]")
    return typer.Exit(code=code)


def _registry() -> ProviderRegistry:
    try:
        return ProviderRegistry.from_config_file(_config_path)
    except ConfigError as e:
        raise _fail(str(e), 2) from e


def _provider(registry: ProviderRegistry, name: Optional[str]):
    try:
        return registry.get_provider(name or registry.config.default_provider)
    except ConfigError as e:
        raise _fail(str(e), 2) from e


def _print_slot(slot: ResultSlot, out_path: Optional[Path]) -> None:
    label = f"#{slot.index + 1} {slot.scene.render()}"
    if slot.status is SlotStatus.SUCCEEDED:
        console.print(f"  [green]✓[/green] {label} → {out_path}")
    else:
        console.print(f"  [red]✗[/red] {label}: {slot.reason}")


def _run_batch(coro_factory, provider_id: str, out: Path) -> BatchResult:
    def on_update(slot: ResultSlot) -> None:
        _print_slot(slot, save_slot(out, slot, provider_id))

    try:
        return asyncio.run(coro_factory(on_update))
    except (BatchError, EmptySceneList) as e:
        raise _fail(str(e), 2) from e
    except ExtractionError as e:
        raise _fail(str(e), 1) from e
    except ConfigError as e:
        raise _fail(str(e), 2) from e


def _report(result: BatchResult) -> None:
    table = Table(title="Batch")
    table.add_column("Requested")
    table.add_column("Succeeded", style="green")
    table.add_column("Failed", style="red")
    table.add_row(str(len(result.requests)), str(len(result.succeeded)), str(len(result.failed)))
    console.print(table)
    if result.failed:
        raise typer.Exit(code=1)


@app.command()
def init(force: bool = typer.Option(False, "--force", help="Overwrite an existing config")):
    """Write a starter posecast.toml in the current directory."""
    path = Path(CONFIG_FILENAME)
    try:
        write_default_config(path, force=force)
    except FileExistsError as e:
        console.print(f"[bold red]Config already exists:[/bold red] {path}")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=2) from e
    console.print(f"[bold green]Created[/bold green] {path}")


@app.command()
def add(
    role: Role = typer.Argument(...),
    image: Path = typer.Argument(..., exists=True, dir_okay=False),
):
    """Put an image in a reference slot (any previous descriptor is cleared)."""
    session = Session.load(_session_path)
    try:
        session.add(role, image)
    except ValueError as e:
        raise _fail(str(e), 2) from e
    session.save()
    console.print(f"[bold green]{role.value}[/bold green] ← {image}")
    console.print(f"Run 'posecast analyze {role.value}' before generating.")


@app.command()
def remove(role: Role = typer.Argument(...)):
    """Clear a reference slot."""
    session = Session.load(_session_path)
    session.remove(role)
    session.save()
    console.print(f"Cleared {role.value}")


@app.command()
def analyze(
    role: Role = typer.Argument(...),
    provider: Optional[str] = typer.Option(None, "--provider", help="Override default provider"),
):
    """Extract the descriptor for one populated slot."""
    session = Session.load(_session_path)
    describer = _provider(_registry(), provider)
    with console.status(f"Analyzing {role.value}..."):
        try:
            state = asyncio.run(analyze_slot(session.state, role, describer))
        except ExtractionError as e:
            raise _fail(str(e), 1) from e
        except ConfigError as e:
            raise _fail(str(e), 2) from e
    session.update(state)
    session.save()
    console.print(f"[bold green]{role.value} descriptor[/bold green]")
    console.print(state.get(role).descriptor)


@app.command()
def status():
    """Show the reference slots of the current session."""
    session = Session.load(_session_path)
    table = Table(title="Reference slots")
    table.add_column("Role")
    table.add_column("Image")
    table.add_column("Type")
    table.add_column("Descriptor")
    for role in Role.order():
        asset = session.state.get(role)
        if asset is None:
            table.add_row(role.value, "-", "-", "-")
            continue
        described = "[green]yes[/green]" if asset.has_descriptor else "[yellow]not analyzed[/yellow]"
        source = session.sources.get(role)
        table.add_row(role.value, source.name if source else "?", asset.image.media_type, described)
    console.print(table)


def _trigger(**kwargs) -> BatchTrigger:
    try:
        return BatchTrigger(**kwargs)
    except ValidationError as e:
        raise _fail(str(e), 2) from e


@app.command()
def sample(
    aspect_ratio: str = typer.Option("none", "--aspect-ratio"),
    art_style: str = typer.Option("none", "--art-style"),
    modification: str = typer.Option("none", "--modification"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    out: Path = typer.Option(Path("posecast_out/sample"), "--out"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Override default provider"),
):
    """Generate one preview image from a random library pose."""
    registry = _registry()
    backend = _provider(registry, provider)
    session = Session.load(_session_path)
    trigger = _trigger(aspect_ratio=aspect_ratio, art_style=art_style, modification=modification)
    orchestrator = BatchOrchestrator(
        backend,
        max_batch_size=registry.config.max_batch_size,
        source=RandomChoice(seed),
    )

    async def run(on_update):
        state, result = await orchestrator.sample(session.state, trigger, backend, on_update)
        session.update(state)
        return result

    result = _run_batch(run, backend.provider_id, out)
    session.save()
    _report(result)


@app.command()
def generate(
    scenes_file: Optional[Path] = typer.Option(
        None, "--scenes-file", exists=True, dir_okay=False, help="One scene per line"
    ),
    scene: Optional[List[str]] = typer.Option(None, "--scene", help="A scene (repeatable)"),
    angle: Optional[List[str]] = typer.Option(
        None, "--angle", help="Camera angle for the scene at the same position (repeatable)"
    ),
    random_poses: int = typer.Option(0, "--random-poses", min=0, help="Draw poses from the library"),
    aspect_ratio: str = typer.Option("none", "--aspect-ratio"),
    art_style: str = typer.Option("none", "--art-style"),
    modification: str = typer.Option("none", "--modification"),
    seed: Optional[int] = typer.Option(None, "--seed"),
    out: Path = typer.Option(Path("posecast_out"), "--out"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Override default provider"),
):
    """Generate a batch of images from the current reference slots."""
    lines: list[str] = []
    if scenes_file is not None:
        lines.append(scenes_file.read_text(encoding="utf-8"))
    lines.extend(scene or [])
    if lines and not "\n".join(lines).strip():
        raise _fail(str(EmptySceneList("No scenes to render: every custom scene line is blank")), 2)
    angles = list(angle or [])

    registry = _registry()
    backend = _provider(registry, provider)
    session = Session.load(_session_path)
    trigger = _trigger(
        custom_scene_text="\n".join(lines),
        angles=angles,
        random_poses=random_poses,
        aspect_ratio=aspect_ratio,
        art_style=art_style,
        modification=modification,
    )
    orchestrator = BatchOrchestrator(
        backend,
        max_batch_size=registry.config.max_batch_size,
        source=RandomChoice(seed),
    )

    console.print(f"[bold]Generating[/bold] with {backend.provider_id} → {out}")
    result = _run_batch(
        lambda on_update: orchestrator.run(session.state, trigger, on_update),
        backend.provider_id,
        out,
    )
    if result.resolved.notice:
        console.print(f"[yellow]⚠ {result.resolved.notice}[/yellow]")
    _report(result)


if __name__ == "__main__":
    app()
