"""AI interviewer CLI — run the gateway, inspect config, grade transcripts."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from interviewer.config import get_settings
from interviewer.models import EvaluationRecord, Speaker, Turn

console = Console()

_SECRET_FIELDS = {"anthropic_api_key", "openai_api_key", "elevenlabs_api_key"}


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """AI interviewer — voice interview gateway with post-hoc grading."""
    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )


# ======================================================================
# SERVE — WebSocket gateway
# ======================================================================
@main.command()
@click.option("--host", default=None, help="Override host")
@click.option("--port", "-p", default=None, type=int, help="Override port")
def serve(host: str | None, port: int | None) -> None:
    """Start the interview gateway."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "interviewer.ws_server:create_interface_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=False,
    )


# ======================================================================
# CONFIG — show resolved settings
# ======================================================================
def _mask(value: str) -> str:
    if not value:
        return "[red]not set[/]"
    return value[:4] + "…" if len(value) > 8 else "****"


@main.command()
def config() -> None:
    """Show the resolved configuration (secrets masked)."""
    settings = get_settings()

    table = Table(title="Interviewer configuration")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value")
    for name, value in settings.model_dump().items():
        shown = _mask(value) if name in _SECRET_FIELDS else escape(str(value))
        table.add_row(name, shown)
    console.print(table)

    status = Table(title="Providers")
    status.add_column("Service", style="cyan")
    status.add_column("Ready")
    for label, ready in (
        (f"chat ({settings.llm_provider}, {settings.active_model})", settings.compute_available),
        (f"transcription ({settings.stt_model})", settings.transcription_available),
        (f"speech ({settings.tts_provider})", settings.speech_available),
    ):
        status.add_row(label, "[green]yes[/]" if ready else "[red]no[/]")
    console.print(status)


# ======================================================================
# GRADE — evaluate a saved transcript
# ======================================================================
def load_transcript(path: Path) -> list[Turn]:
    """Read a JSON list of turns.

    Accepts ``{"speaker", "text"}`` items as well as chat-style
    ``{"role", "content"}`` items.
    """
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise click.BadParameter("transcript must be a JSON list of turns")
    turns = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise click.BadParameter(f"turn {index} is not a JSON object")
        speaker = item.get("speaker") or item.get("role")
        text = item.get("text") if "text" in item else item.get("content", "")
        try:
            turns.append(Turn(speaker=Speaker(speaker), text=text))
        except ValueError:
            raise click.BadParameter(
                f"turn {index} has unknown speaker {speaker!r} "
                "(expected 'user' or 'assistant') or non-text content"
            ) from None
    return turns


def _bullets(items) -> str:
    if isinstance(items, list):
        return "\n".join(f"• {escape(str(s))}" for s in items)
    return escape(str(items))


def _print_record(record: EvaluationRecord) -> None:
    scores = Table(title="Scores")
    scores.add_column("Criterion", style="cyan")
    scores.add_column("Score", justify="right")
    for name, value in record.scores.model_dump(by_alias=True, exclude_unset=True).items():
        shown = f"{value:g}" if isinstance(value, (int, float)) else str(value)
        scores.add_row(name, escape(shown))
    console.print(scores)

    comments = record.comments
    if comments.strengths:
        console.print(Panel(_bullets(comments.strengths), title="Strengths"))
    if comments.improvements:
        console.print(Panel(_bullets(comments.improvements), title="Improvements"))
    summary = escape(str(comments.summary)) if comments.summary else "—"
    console.print(Panel(summary, title="Summary", border_style="green"))


@main.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the raw record as JSON")
def grade(transcript: Path, as_json: bool) -> None:
    """Grade a saved interview TRANSCRIPT (JSON list of turns)."""
    from interviewer.compute import ComputeClient
    from interviewer.evaluation import EmptyHistoryError, EvaluationEngine

    settings = get_settings()
    turns = load_transcript(transcript)
    engine = EvaluationEngine(
        ComputeClient(settings), max_tokens=settings.evaluation_max_tokens
    )

    with console.status("Grading transcript..."):
        try:
            record = engine.evaluate_candidate(transcript.stem, turns)
        except EmptyHistoryError:
            console.print("[red]Transcript has no turns.[/]")
            sys.exit(1)

    if as_json:
        click.echo(json.dumps(record.to_payload(), indent=2, ensure_ascii=False))
    else:
        _print_record(record)


if __name__ == "__main__":
    main()
