"""Dovetail chat CLI - Main entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from dovetail_chat import __version__

app = typer.Typer(
    name="dovetail-chat",
    help="Terminal chat client for the Dovetail agent",
    add_completion=False,
)
console = Console()


def build_runtime(settings, voice: bool = True):
    """Wire the transport, dictation engine and controller from settings."""
    from dovetail_chat.runtime import ChatRuntime
    from dovetail_chat.speech.engines import create_dictation_engine
    from dovetail_chat.transport.socketio_channel import SocketIOChannel

    channel = SocketIOChannel(
        settings.server_url,
        user_event=settings.user_event,
        agent_event=settings.agent_event,
        namespace=settings.namespace,
        connect_timeout=settings.connect_timeout,
        reconnection=settings.reconnection,
        reconnection_attempts=settings.reconnection_attempts,
        reconnection_delay=settings.reconnection_delay,
    )
    engine = create_dictation_engine(
        enabled=voice and settings.dictation_enabled,
        language=settings.dictation_language,
        timeout=settings.dictation_timeout,
        phrase_time_limit=settings.dictation_phrase_limit,
        ambient_noise_duration=settings.ambient_noise_duration,
    )
    return ChatRuntime(
        channel,
        engine,
        reconnect=settings.reconnection,
        reconnect_attempts=settings.reconnection_attempts,
        reconnect_delay=settings.reconnection_delay,
    )


@app.command()
def chat(
    url: Optional[str] = typer.Option(
        None,
        "--url", "-u",
        help="Agent server URL (overrides DOVETAIL_SERVER_URL)",
    ),
    no_voice: bool = typer.Option(
        False,
        "--no-voice",
        help="Disable voice input",
    ),
    log_file: Path = typer.Option(
        Path("dovetail-chat.log"),
        "--log-file",
        help="Where to write logs while the UI is running",
    ),
):
    """Open the chat window."""
    from pydantic import ValidationError

    from dovetail_chat.config import configure_logging, get_settings

    try:
        settings = get_settings()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1)

    if url:
        settings = settings.model_copy(update={"server_url": url})

    configure_logging(
        level=settings.log_level,
        format=settings.log_format,
        log_file=settings.log_file or log_file,
    )

    from dovetail_chat.tui.app import DovetailChatApp

    runtime = build_runtime(settings, voice=not no_voice)
    DovetailChatApp(runtime, assistant_name=settings.assistant_name).run()


@app.command()
def version():
    """Show version information."""
    console.print(f"dovetail-chat [cyan]{__version__}[/cyan]")


@app.callback()
def main():
    """Dovetail chat - talk to the Dovetail agent from your terminal."""
    pass


if __name__ == "__main__":
    app()
