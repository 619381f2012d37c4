"""
Dashbridge CLI

Command-line interface for running the gateway.
"""

import click

from dashbridge import __version__
from dashbridge.config import settings
from dashbridge.core.log import configure_logging


# ══════════════════════════════════════════════════════════════
# CLI Group
# ══════════════════════════════════════════════════════════════


@click.group()
@click.version_option(version=__version__, prog_name="dashbridge")
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
def cli(debug: bool) -> None:
    """Dashbridge - realtime speech gateway for DashScope."""
    level = "DEBUG" if debug else settings.log_level
    configure_logging(level, settings.log_format)


# ══════════════════════════════════════════════════════════════
# Server Commands
# ══════════════════════════════════════════════════════════════


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload")
@click.option("--workers", default=1, help="Number of worker processes")
def serve(host: str | None, port: int | None, reload: bool, workers: int) -> None:
    """Start the gateway server."""
    import uvicorn

    host = host or settings.host
    port = port or settings.port

    click.echo(f"Starting Dashbridge on {host}:{port}")
    click.echo("Endpoints:")
    click.echo(f"  - ws://{host}:{port}/realtime/asr")
    click.echo(f"  - ws://{host}:{port}/realtime/tts?voice=<voice>")
    click.echo(f"  - ws://{host}:{port}/api-ws/v1/<path>")
    click.echo(f"  - http://{host}:{port}/compatible-mode/v1/<path>")

    if not settings.dashscope_api_key:
        click.echo("Warning: DASHSCOPE_API_KEY is not set", err=True)

    uvicorn.run(
        "dashbridge.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        workers=workers if not reload else 1,
        factory=True,
    )


# ══════════════════════════════════════════════════════════════
# Text Commands
# ══════════════════════════════════════════════════════════════


@cli.command("prepare-text")
@click.argument("text")
@click.option(
    "--policy",
    "-p",
    default=None,
    type=click.Choice(["whitelist", "markdown"]),
    help="Sanitization policy (defaults to TTS_TEXT_POLICY)",
)
@click.option("--threshold", "-t", default=None, type=int, help="Chunking threshold")
def prepare_text_command(text: str, policy: str | None, threshold: int | None) -> None:
    """Show how TEXT is sanitized and chunked before synthesis."""
    from dashbridge.text import TextPreparer, TextPolicy

    preparer = TextPreparer(
        policy=TextPolicy(policy or settings.tts_text_policy),
        threshold=threshold or settings.tts_chunk_threshold,
    )
    sanitized = preparer.sanitize(text)
    chunks = preparer.prepare(text)

    click.echo(f"Sanitized: {sanitized!r}")
    click.echo(f"Chunks ({len(chunks)}):")
    for i, chunk in enumerate(chunks, 1):
        click.echo(f"  {i}. {chunk}")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
