"""CLI Application for PromptCraft."""

import asyncio
import logging
import os
from collections.abc import Coroutine, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from .credentials import PromptedCredentials
from .errors import PromptCraftError, SessionImportError
from .media import is_image_data_uri, read_image_as_data_uri, save_data_uri
from .models import (
    AspectRatio,
    BuilderGroup,
    Framework,
    GatewayConfig,
    GenerationSession,
    PromptMode,
    Tone,
)
from .orchestrator import Orchestrator, apply_builder, is_error_result
from .service import GeminiService
from .store import DebouncedSaver, SessionStore

T = TypeVar("T")

# Setup Typer and Console
app = typer.Typer(help="PromptCraft CLI - Idea to structured prompt, tested")
console = Console()

DEFAULT_HOME = Path.home() / ".promptcraft"


@app.callback()
def main(
    ctx: typer.Context,
    session_dir: Path = typer.Option(
        DEFAULT_HOME,
        envvar="PROMPTCRAFT_HOME",
        help="Directory holding the saved session",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Craft prompts for text, image and video models."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    store = SessionStore(session_dir)
    ctx.obj = DebouncedSaver(store)


def _saver(ctx: typer.Context) -> DebouncedSaver:
    return ctx.obj


@contextmanager
def _session(ctx: typer.Context, *, modify: bool = True) -> Iterator[GenerationSession]:
    """Load the session, and persist it afterwards when ``modify`` is set."""
    saver = _saver(ctx)
    session = saver.store.load()
    try:
        yield session
        if modify:
            saver.touch(session)
    finally:
        saver.flush()


def _get_orchestrator(
    api_key: str | None = None,
    paid_key: str | None = None,
    config: GatewayConfig | None = None,
) -> Orchestrator:
    """Get the orchestrator backed by the Gemini service."""
    load_dotenv()
    if not api_key:
        api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        console.print(
            "[bold red]Error:[/bold red] GEMINI_API_KEY not found in env or arguments.",
        )
        raise typer.Exit(code=1)
    service = GeminiService(api_key, config=config)
    return Orchestrator(service, credentials=PromptedCredentials(paid_key))


def _run_stage(description: str, coro: Coroutine[Any, Any, T]) -> T:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        try:
            return asyncio.run(coro)
        except PromptCraftError as e:
            progress.stop()
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1) from e


def _show_result(result: str, title: str) -> None:
    if is_image_data_uri(result):
        body = f"[italic]Image data ({len(result)} chars)[/italic]"
        style = "green"
    elif is_error_result(result):
        body, style = result, "red"
    else:
        body, style = result, "green"
    console.print(Panel(body, title=title, border_style=style))


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the current session."""
    with _session(ctx, modify=False) as session:
        cfg = session.config
        console.print(
            Panel(
                f"[bold]Mode:[/bold] {cfg.mode.value}\n"
                f"[bold]Framework:[/bold] {cfg.framework.value}\n"
                f"[bold]Tone:[/bold] {cfg.tone.value}\n"
                f"[bold]Aspect Ratio:[/bold] {cfg.aspect_ratio.value}\n"
                f"[bold]Variables:[/bold] {'yes' if cfg.include_variables else 'no'}\n"
                f"[bold]Avoid:[/bold] {cfg.negative_constraint or '-'}\n"
                f"[bold]Input:[/bold] {session.active_input_mode.value}",
                title="Configuration",
                border_style="blue",
            ),
        )
        console.print(Panel(session.raw_input or "-", title="Raw Input"))
        console.print(Panel(session.optimized_output or "-", title="Optimized Prompt"))
        for group in BuilderGroup:
            fields = session.descriptor.group(group).model_dump(mode="json")
            console.print(
                Panel(
                    "\n".join(f"{k}: {v}" for k, v in fields.items()),
                    title=f"Scene: {group.value}",
                    border_style="purple",
                ),
            )


@app.command()
def mode(
    ctx: typer.Context,
    new_mode: PromptMode = typer.Argument(
        ...,
        case_sensitive=False,
        help="Text, Image or Video",
    ),
) -> None:
    """Switch the target modality (resets framework, tone and results)."""
    with _session(ctx) as session:
        session.set_mode(new_mode)
        console.print(
            f"Mode set to [bold]{new_mode.value}[/bold] "
            f"({session.config.framework.value} / {session.config.tone.value}, "
            f"{session.active_input_mode.value} input)",
        )


@app.command()
def configure(
    ctx: typer.Context,
    framework: Framework | None = typer.Option(None, help="Optimization framework"),
    tone: Tone | None = typer.Option(None, help="Output tone"),
    variables: bool | None = typer.Option(
        None,
        "--variables/--no-variables",
        help="Ask for bracketed placeholder variables",
    ),
    negative: str | None = typer.Option(
        None,
        help="Things to exclude (empty string clears)",
    ),
    aspect_ratio: AspectRatio | None = typer.Option(None, help="16:9 or 9:16"),
) -> None:
    """Change generation settings."""
    updates: dict[str, Any] = {
        "framework": framework,
        "tone": tone,
        "include_variables": variables,
        "negative_constraint": negative,
        "aspect_ratio": aspect_ratio,
    }
    updates = {k: v for k, v in updates.items() if v is not None}
    with _session(ctx) as session:
        session.config = session.config.model_copy(update=updates)
        console.print(f"Updated: {', '.join(updates) or 'nothing'}")


@app.command()
def edit(
    ctx: typer.Context,
    group: BuilderGroup = typer.Argument(
        ...,
        case_sensitive=False,
        help="world, camera or sequencing",
    ),
    field: str = typer.Argument(..., help="Field name, e.g. costume"),
    value: str = typer.Argument(..., help="New value (empty string clears)"),
) -> None:
    """Set one scene descriptor field."""
    with _session(ctx) as session:
        current = session.descriptor.group(group)
        if field not in type(current).model_fields:
            console.print(
                f"[bold red]Error:[/bold red] Unknown {group.value} field '{field}'. "
                f"Choose from: {', '.join(type(current).model_fields)}",
            )
            raise typer.Exit(code=1)
        try:
            updated = type(current).model_validate(
                {**current.model_dump(), field: value},
            )
        except ValidationError as e:
            console.print(f"[bold red]Error:[/bold red] {e.errors()[0]['msg']}")
            raise typer.Exit(code=1) from e
        setattr(session.descriptor, group.value, updated)
        console.print(f"{group.value}.{field} = {value!r}")


@app.command()
def build(
    ctx: typer.Context,
    group: BuilderGroup = typer.Argument(
        BuilderGroup.WORLD,
        help="Field group to assemble",
    ),
) -> None:
    """Assemble a prompt from the scene descriptor."""
    with _session(ctx) as session:
        prompt = apply_builder(session, group)
        console.print(
            Panel(prompt, title=f"Assembled ({group.value})", border_style="cyan"),
        )


@app.command()
def optimize(
    ctx: typer.Context,
    text: str | None = typer.Argument(None, help="Raw idea (defaults to the saved one)"),
    api_key: str | None = typer.Option(
        None,
        envvar="GEMINI_API_KEY",
        help="Google Gemini API Key",
    ),
    model: str = typer.Option("gemini-2.5-flash", help="Gemini model for optimizing"),
    temperature: float = typer.Option(0.7, help="Temperature for optimizing"),
) -> None:
    """Rewrite a raw idea into a structured prompt."""
    with _session(ctx) as session:
        if text is not None:
            session.raw_input = text
        orchestrator = _get_orchestrator(
            api_key,
            config=GatewayConfig(text_model=model, temperature=temperature),
        )
        console.rule("[bold blue]Optimize")
        result = _run_stage("Optimizing...", orchestrator.optimize(session))
        console.print(Panel(result, title="Optimized Prompt", border_style="green"))


def _waiting_message(prompt_mode: PromptMode) -> str:
    match prompt_mode:
        case PromptMode.VIDEO:
            return "Initializing Veo... This may take 1-2 minutes."
        case PromptMode.IMAGE:
            return "Generating Image..."
        case PromptMode.TEXT:
            return "Gemini is thinking..."


@app.command()
def test(
    ctx: typer.Context,
    analyze_result: bool = typer.Option(
        False,
        "--analyze",
        help="Critique an image result right away",
    ),
    save: Path | None = typer.Option(None, help="Write an image result to this file"),
    api_key: str | None = typer.Option(
        None,
        envvar="GEMINI_API_KEY",
        help="Google Gemini API Key",
    ),
    paid_key: str | None = typer.Option(
        None,
        envvar="GEMINI_PAID_API_KEY",
        help="Paid API key used for video generation",
    ),
    poll_timeout: float = typer.Option(
        600.0,
        help="Give up on a video job after this many seconds",
    ),
) -> None:
    """Run the optimized prompt against the model for the current mode."""
    with _session(ctx) as session:
        orchestrator = _get_orchestrator(
            api_key,
            paid_key=paid_key,
            config=GatewayConfig(poll_timeout=poll_timeout),
        )
        console.rule(f"[bold cyan]Test ({session.config.mode.value})")
        result = _run_stage(
            _waiting_message(session.config.mode),
            orchestrator.test(session),
        )
        _show_result(result, "Test Result")

        if save and is_image_data_uri(result):
            save_data_uri(result, save)
            console.print(f"Image saved to: [underline]{save.absolute()}[/underline]")

        if analyze_result and is_image_data_uri(result):
            console.rule("[bold purple]Analyze")
            analysis = _run_stage("Analyzing image...", orchestrator.analyze(session))
            console.print(Panel(analysis, title="Analysis", border_style="purple"))


@app.command()
def analyze(
    ctx: typer.Context,
    image: Path = typer.Argument(..., help="Generated image to critique"),
    api_key: str | None = typer.Option(
        None,
        envvar="GEMINI_API_KEY",
        help="Google Gemini API Key",
    ),
) -> None:
    """Critique an image against the optimized prompt."""
    if not image.exists():
        console.print(f"[bold red]Error:[/bold red] File {image} not found.")
        raise typer.Exit(code=1)
    try:
        data_uri = read_image_as_data_uri(image)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    with _session(ctx, modify=False) as session:
        session.test_result = data_uri
        orchestrator = _get_orchestrator(api_key)
        analysis = _run_stage("Analyzing image...", orchestrator.analyze(session))
        console.print(Panel(analysis, title="Analysis", border_style="purple"))


@app.command()
def save(ctx: typer.Context) -> None:
    """Rewrite the autosave file now.

    Every editing command already saves on exit; this only refreshes the
    file, replacing a corrupt one with the session currently loaded.
    """
    saver = _saver(ctx)
    session = saver.store.load()
    path = saver.store.save(session)
    console.print(f"Saved to: [underline]{path}[/underline]")


@app.command(name="export")
def export_session(
    ctx: typer.Context,
    output: Path = typer.Argument(..., help="File to write the session to"),
) -> None:
    """Export the session to a JSON file."""
    with _session(ctx, modify=False) as session:
        _saver(ctx).store.export(session, output)
        console.print(f"Session exported to: [underline]{output.absolute()}[/underline]")


@app.command(name="import")
def import_session(
    ctx: typer.Context,
    input_path: Path = typer.Argument(..., help="Session file to load"),
) -> None:
    """Replace the session with one exported earlier."""
    with _session(ctx) as session:
        try:
            _saver(ctx).store.import_into(session, input_path)
        except SessionImportError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1) from e
        console.print("Session loaded successfully!")


@app.command()
def reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear the saved session and reset all fields."""
    if not yes and not typer.confirm(
        "Clear your current session and reset all fields? This cannot be undone.",
    ):
        raise typer.Abort()
    saver = _saver(ctx)
    saver.cancel()
    saver.store.clear()
    console.print("Session cleared.")


if __name__ == "__main__":
    app()
