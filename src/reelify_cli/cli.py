from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .analysis.mapper import Mapper
from .analysis.registry import ProviderRegistry
from .analysis.types import VisualSchema
from .config import ConfigError, ReelifyConfig, load_config_or_default
from .director.creative import analyze_prompt
from .director.synthesizer import DirectorPolicy, MotionIR, director
from .errors import PipelineError
from .io import load_model, read_document, write_json
from .pipeline import Pipeline
from .render.coder import coder
from .render.composition import Composition
from .schema import Timeline
from .validate import validate_motion_ir

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Turn a still image and a text prompt into an animated video."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_path: Optional[Path]) -> ReelifyConfig:
    try:
        return load_config_or_default(config_path)
    except ConfigError as e:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e


def _read_input(path: Path) -> dict[str, Any]:
    try:
        return read_document(path)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Cannot read[/bold red] {path}: {escape(str(e))}")
        raise typer.Exit(code=2) from e


def _emit(payload: Any, out: Optional[Path]) -> None:
    if out is not None:
        write_json(out, payload)
        console.print(f"Wrote {out}")
    else:
        console.print_json(json.dumps(payload))


@app.command()
def generate(
    image: Path = typer.Argument(..., exists=True, dir_okay=False),
    prompt: str = typer.Argument(...),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to reelify.toml"),
    save_ir: Optional[Path] = typer.Option(None, "--save-ir", help="Also write the Motion-IR JSON"),
):
    """Run the full pipeline: analyze → direct → compose → render → publish."""
    config = _load_config(config_path)
    try:
        pipeline = Pipeline.from_config(config)
    except ConfigError as e:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e

    console.print(f"[bold]Generating[/bold] {image}")
    try:
        result = pipeline.run(str(image), prompt)
    except PipelineError as e:
        console.print(f"[bold red]Failed[/bold red] ({e.category.value}) {escape(str(e))}")
        console.print(f"Request: {e.request_id}")
        raise typer.Exit(code=1) from e

    for sr in result.stage_results:
        status = "[green]✓[/green]" if sr.success else "[red]✗[/red]"
        console.print(f"  {status} {sr.name} ({sr.duration_sec:.2f}s, {sr.attempts} attempt(s))")

    if save_ir is not None:
        write_json(save_ir, result.motion_ir.to_json_dict())
        console.print(f"Motion-IR: {save_ir}")

    console.print(f"\n[bold green]Done[/bold green] in {result.processing_time:.2f}s")
    console.print(f"Output: {result.output_path}")
    console.print(f"URL: {result.video_url}")


@app.command()
def analyze(
    image: str = typer.Argument(..., help="Image path or URL"),
    config_path: Optional[Path] = typer.Option(None, "--config"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Override default provider"),
    out: Optional[Path] = typer.Option(None, "--out", "-o"),
):
    """Print the visual schema for an image."""
    config = _load_config(config_path)
    registry = ProviderRegistry(config)
    try:
        analysis_provider = registry.get_provider(provider or config.default_provider)
    except (ConfigError, ValueError) as e:
        console.print(f"[bold red]Provider error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e

    schema = Mapper(analysis_provider).map(image)
    _emit(schema.model_dump(mode="json"), out)


@app.command()
def direct(
    schema_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    prompt: str = typer.Argument(...),
    image: Optional[str] = typer.Option(None, "--image", help="Asset reference for the main layer"),
    config_path: Optional[Path] = typer.Option(None, "--config"),
    out: Optional[Path] = typer.Option(None, "--out", "-o"),
):
    """Synthesize a Motion-IR timeline from a visual schema file and a prompt."""
    config = _load_config(config_path)
    try:
        schema = load_model(VisualSchema, schema_file)
    except ValidationError as e:
        console.print(f"[bold red]Invalid visual schema:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Cannot read[/bold red] {schema_file}: {escape(str(e))}")
        raise typer.Exit(code=2) from e

    motion_ir = director(schema, prompt, image, policy=DirectorPolicy.from_settings(config.director))
    _emit(motion_ir.to_json_dict(), out)

    if not motion_ir.validation.is_valid:
        console.print("[bold red]Errors[/bold red]")
        for e in motion_ir.validation.errors:
            console.print(f"- {escape(e)}")
        raise typer.Exit(code=2)


def _motion_ir_from(data: dict[str, Any]) -> MotionIR:
    if "timeline" in data:
        return MotionIR.model_validate(data)
    timeline = Timeline.model_validate(data)
    return MotionIR(
        timeline=timeline,
        validation=validate_motion_ir(timeline),
        direction=analyze_prompt(""),
    )


@app.command()
def compose(
    motion_ir_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    bake: bool = typer.Option(False, "--bake", help="Include per-frame samples"),
    out: Optional[Path] = typer.Option(None, "--out", "-o"),
):
    """Translate a Motion-IR (or bare timeline) file into renderer props."""
    try:
        motion_ir = _motion_ir_from(_read_input(motion_ir_file))
    except ValidationError as e:
        console.print(f"[bold red]Invalid Motion-IR:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e

    _emit(coder(motion_ir).to_render_props(bake=bake), out)


@app.command()
def health(config_path: Optional[Path] = typer.Option(None, "--config")):
    """Check that every pipeline component loads."""
    config = _load_config(config_path)
    try:
        pipeline = Pipeline.from_config(config)
    except ConfigError as e:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e

    report = pipeline.health_check()
    stats = pipeline.stats()

    table = Table(title="Pipeline health")
    table.add_column("Component")
    table.add_column("Status")
    for name, ok in report.components.items():
        table.add_row(name, "[green]ok[/green]" if ok else "[red]failed[/red]")
    console.print(table)
    console.print(
        f"Provider: {stats['analysis_provider']}  Renderer: {stats['renderer']} "
        f"({'available' if stats['renderer_available'] else 'not installed'})"
    )

    if report.errors:
        console.print("\n[bold red]Errors:[/bold red]")
        for e in report.errors:
            console.print(f"  - {escape(e)}")
        raise typer.Exit(code=1)


@app.command("export-jsonschema")
def export_jsonschema(out_dir: Path = typer.Option(Path("docs/jsonschema"), "--out-dir")):
    out_dir.mkdir(parents=True, exist_ok=True)
    schemas = {
        "timeline.schema.json": Timeline.model_json_schema(by_alias=True),
        "visual_schema.schema.json": VisualSchema.model_json_schema(),
        "composition.schema.json": Composition.model_json_schema(by_alias=True),
    }
    for name, schema in schemas.items():
        out_path = out_dir / name
        out_path.write_text(json.dumps(schema, indent=2), encoding="utf-8")
        console.print(f"Wrote {out_path}")


if __name__ == "__main__":
    app()
