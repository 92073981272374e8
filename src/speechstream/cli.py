"""speechstream - terminal client that streams an analysis and reads it aloud."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.style import Style
from rich.table import Table

from .analysis_client import AnalysisClient
from .config import Settings, get_settings
from .logging_settings import configure_logging
from .pipeline import AnalysisPipeline
from .speech import SpeechController, SpeechEngine, SynthesisError, Utterance, Voice

# Styles
ASSISTANT_STYLE = Style(color="bright_green")
PROGRESS_STYLE = Style(color="cyan")
ERROR_STYLE = Style(color="red", bold=True)
INFO_STYLE = Style(color="yellow")

STEP_LABELS = {
    "detection": "Detecting objects",
    "ocr": "Reading text",
    "nlp": "Building hypothesis",
}


class ConsoleSink:
    """Message sink printing the streamed analysis to a rich console."""

    def __init__(self, console: Console):
        self.console = console
        self.final_text: Optional[str] = None
        self.message_id: Optional[str] = None
        self.error: Optional[str] = None

    def on_progress(self, step: str, image: Optional[int], total: Optional[int]) -> None:
        label = STEP_LABELS.get(step)
        if label is None:
            return
        if image is not None and total:
            label = f"{label} ({image}/{total})"
        self.console.print(f"[dim]{label}...[/dim]", style=PROGRESS_STYLE)

    def on_token(self, text: str) -> None:
        self.console.print(text, end="", style=ASSISTANT_STYLE, markup=False, highlight=False)

    def on_complete(self, final_text: str, message_id: str) -> None:
        self.final_text = final_text
        self.message_id = message_id
        self.console.print()
        self.console.print(f"[dim]Saved as message {message_id}[/dim]")

    def on_error(self, message: str) -> None:
        self.error = message
        self.console.print()
        self.console.print(f"Error: {message}", style=ERROR_STYLE)

    def on_cancelled(self, partial_text: str) -> None:
        self.console.print()
        self.console.print("[Stopped]", style=INFO_STYLE, markup=False)


class SilentEngine:
    """Engine that finishes every utterance instantly without audio."""

    def list_voices(self) -> list[Voice]:
        return []

    def speak(
        self,
        utterance: Utterance,
        on_end: Callable[[], None],
        on_error: Callable[[SynthesisError], None],
    ) -> None:
        on_end()

    def cancel(self) -> None:
        pass

    def pause(self) -> None:
        pass

    def resume(self) -> None:
        pass


def _make_engine(silent: bool) -> SpeechEngine:
    if silent:
        return SilentEngine()
    from .speech.pyttsx3_engine import Pyttsx3Engine

    return Pyttsx3Engine()


def _shutdown_engine(engine: SpeechEngine) -> None:
    shutdown = getattr(engine, "shutdown", None)
    if shutdown is not None:
        shutdown()


async def analyze(
    settings: Settings,
    console: Console,
    conversation_id: str,
    context: Optional[str],
    *,
    speech: bool,
) -> int:
    engine = _make_engine(silent=not speech)
    controller = SpeechController.from_settings(engine, settings)
    client = AnalysisClient(settings)
    sink = ConsoleSink(console)
    try:
        async with AnalysisPipeline(
            client, controller, sink, speech_enabled=speech
        ) as pipeline:
            await pipeline.run(conversation_id, context)
            if sink.error is None:
                await controller.wait_until_idle()
    finally:
        await client.aclose()
        _shutdown_engine(engine)
    return 1 if sink.error else 0


async def say(settings: Settings, text: str) -> int:
    engine = _make_engine(silent=False)
    controller = SpeechController.from_settings(engine, settings)
    controller.speak_now(text)
    try:
        await controller.wait_until_idle()
    finally:
        controller.stop()
        _shutdown_engine(engine)
    return 0


def list_voices(settings: Settings, console: Console) -> int:
    engine = _make_engine(silent=False)
    try:
        controller = SpeechController.from_settings(engine, settings)
    finally:
        _shutdown_engine(engine)
    if not controller.voices:
        console.print("No voices available", style=ERROR_STYLE)
        return 1

    table = Table(title="Voices")
    table.add_column("")
    table.add_column("Name")
    table.add_column("Language")
    table.add_column("URI", overflow="fold")
    for voice in controller.voices:
        marker = "*" if voice == controller.voice else ""
        table.add_row(marker, voice.name, voice.language, voice.uri)
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speechstream",
        description="Stream an evidence analysis and read it aloud",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  speechstream analyze 3f2c...              Stream and speak an analysis
  speechstream analyze 3f2c... --no-speech  Print tokens only
  speechstream say "Case closed."           Speak one message
  speechstream voices                       Show the voice catalog

Environment Variables:
  ANALYSIS_BASE_URL   Analysis API base URL
  LOG_LEVEL           Root log level (default: INFO)
""",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Stream an analysis")
    analyze_parser.add_argument("conversation_id", help="Conversation to analyze")
    analyze_parser.add_argument(
        "--context", "-c", default=None, help="Extra context for the analysis"
    )
    analyze_parser.add_argument(
        "--no-speech", action="store_true", help="Do not read the analysis aloud"
    )

    say_parser = subparsers.add_parser("say", help="Speak a message once")
    say_parser.add_argument("text", help="Text to speak")

    subparsers.add_parser("voices", help="List available voices")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)
    console = Console()

    try:
        if args.command == "analyze":
            speech = settings.speech_enabled and not args.no_speech
            return asyncio.run(
                analyze(settings, console, args.conversation_id, args.context, speech=speech)
            )
        if args.command == "say":
            return asyncio.run(say(settings, args.text))
        return list_voices(settings, console)
    except KeyboardInterrupt:
        console.print("\nExiting...", style=INFO_STYLE)
        return 130


if __name__ == "__main__":
    sys.exit(main())
