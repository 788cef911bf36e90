"""Command-line interface for Voicegate."""

import asyncio
import json
import logging
import signal
import sys

import click

from .config import Config
from .engine import VoiceCommandDebouncer
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Options shared by every command that builds an engine
_ENGINE_OPTIONS = [
    click.option(
        "--debounce-delay-ms",
        type=float,
        help="Base debounce delay in milliseconds (default: 1000)",
    ),
    click.option(
        "--min-command-interval-ms",
        type=float,
        help="Minimum time between executed commands in milliseconds (default: 500)",
    ),
    click.option(
        "--coalesce-policy",
        type=click.Choice(["share_result", "resolve_false"], case_sensitive=False),
        help="How callers of replaced pending commands are resolved (default: share_result)",
    ),
    click.option(
        "--max-commands-per-second",
        type=int,
        help="Commands allowed per one-second window (default: 3)",
    ),
    click.option(
        "--max-commands-per-minute",
        type=int,
        help="Commands allowed per one-minute window (default: 30)",
    ),
    click.option(
        "--rate-limit/--no-rate-limit",
        default=None,
        help="Enable/disable rate limiting (default: enabled)",
    ),
    click.option(
        "--duplicate-command-window-ms",
        type=float,
        help="How long a command text is remembered for duplicate detection (default: 2000)",
    ),
    click.option(
        "--similarity-threshold",
        type=click.FloatRange(0.0, 1.0),
        help="Similarity at or above which commands are duplicates (default: 0.8)",
    ),
    click.option(
        "--command-filtering/--no-command-filtering",
        default=None,
        help="Enable/disable duplicate filtering (default: enabled)",
    ),
    click.option(
        "--adaptive/--no-adaptive",
        default=None,
        help="Enable/disable adaptive debouncing (default: enabled)",
    ),
    click.option(
        "--performance-mode/--no-performance-mode",
        default=None,
        help="Enable/disable frame-rate driven performance mode (default: enabled)",
    ),
    click.option(
        "--performance-mode-threshold",
        type=float,
        help="Frame rate below which performance mode turns on (default: 30)",
    ),
    click.option(
        "--log-level",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
        help="Logging level (default: INFO)",
    ),
    click.option(
        "--log-format",
        type=click.Choice(["text", "json"], case_sensitive=False),
        help="Log format (default: json)",
    ),
]


def engine_options(func):
    """Attach the shared engine options to a command."""
    for option in reversed(_ENGINE_OPTIONS):
        func = option(func)
    return func


def _load_config(kwargs: dict) -> Config:
    # Filter out None values (unspecified options)
    cli_args = {k: v for k, v in kwargs.items() if v is not None}
    try:
        return Config.from_cli_and_env(cli_args)
    except ValueError as e:
        raise click.BadParameter(str(e))


@click.group()
def cli():
    """Voicegate - Voice command debouncing and rate limiting service."""
    pass


@cli.command()
@engine_options
@click.option(
    "--api-host",
    type=str,
    help="API server host (default: 0.0.0.0)",
)
@click.option(
    "--api-port",
    type=int,
    help="API server port (default: 8000)",
)
@click.option(
    "--api-bearer-token",
    type=str,
    help="Bearer token for API authentication (if set, all endpoints except /docs, /redoc, /metrics and health require authentication)",
)
@click.option(
    "--metrics/--no-metrics",
    default=None,
    help="Enable/disable Prometheus metrics (default: enabled)",
)
@click.option(
    "--webhook-url",
    type=str,
    help="Webhook URL executed commands are forwarded to",
)
@click.option(
    "--webhook-jsonpath",
    type=str,
    help="JSONPath expression applied to the webhook payload (default: $)",
)
@click.option(
    "--webhook-timeout",
    type=int,
    help="Webhook HTTP request timeout in seconds (default: 5)",
)
@click.option(
    "--webhook-retry-count",
    type=int,
    help="Number of webhook retry attempts on failure (default: 3)",
)
def server(**kwargs):
    """Start the Voicegate API server."""
    from .__main__ import Application

    config = _load_config(kwargs)

    setup_logging(level=config.log_level, format_type=config.log_format)

    app = Application(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}")
        loop.create_task(app.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        loop.run_until_complete(app.run())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt")
    finally:
        loop.close()


@cli.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False))
@engine_options
@click.option(
    "--speed",
    type=float,
    default=1.0,
    show_default=True,
    help="Playback speed multiplier",
)
@click.option(
    "--reject-all",
    is_flag=True,
    help="Simulate a game that rejects every command (drives adaptive mode)",
)
@click.option(
    "--json-output",
    is_flag=True,
    help="Print the full report as JSON",
)
def replay(transcript, speed, reject_all, json_output, **kwargs):
    """Replay a recorded transcript through the engine.

    The transcript is a JSON-lines file, one recognition result per line:

    \b
      {"text": "jump", "confidence": 0.92, "offset_ms": 0}
      {"text": "jump", "confidence": 0.88, "offset_ms": 120}
      {"text": "open the door then run", "confidence": 0.65, "offset_ms": 900}

    Examples:

    \b
      # Replay at real speed
      voicegate replay session.jsonl

      # Replay ten times faster without adaptive debouncing
      voicegate replay session.jsonl --speed 10 --no-adaptive
    """
    from .replay import TranscriptError, load_transcript, replay_transcript

    config = _load_config(kwargs)
    setup_logging(level=config.log_level, format_type=config.log_format)

    try:
        entries = load_transcript(transcript)
    except TranscriptError as e:
        click.echo(f"Invalid transcript: {e}", err=True)
        sys.exit(1)

    if speed <= 0:
        raise click.BadParameter("speed must be positive", param_hint="--speed")

    async def run_replay():
        debouncer = VoiceCommandDebouncer(options=config.engine_options())
        debouncer.on_command(lambda command, context: not reject_all)
        try:
            return await replay_transcript(debouncer, entries, speed=speed)
        finally:
            debouncer.destroy()

    report = asyncio.run(run_replay())

    if json_output:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    for outcome in report.outcomes:
        marker = "+" if outcome.accepted else "-"
        confidence = (
            f"{outcome.entry.confidence:.2f}" if outcome.entry.confidence is not None else "n/a"
        )
        click.echo(
            f"{marker} {outcome.entry.offset_ms:>8.0f}ms  {outcome.entry.text}  "
            f"(confidence={confidence})"
        )

    stats = report.statistics.to_dict()
    performance = stats["performance"]
    click.echo("")
    click.echo(f"Submitted: {report.submitted}  Accepted: {report.accepted}  Rejected: {report.rejected}")
    click.echo(
        f"Rate limited: {performance['commands_rate_limited']}  "
        f"Filtered: {performance['commands_filtered']}  "
        f"Debounced: {performance['commands_debounced']}  "
        f"Coalesced: {performance['commands_coalesced']}"
    )
    click.echo(
        f"Adaptive mode: {'on' if stats['adaptive']['mode'] else 'off'}  "
        f"Current delay: {stats['adaptive']['current_delay_ms']}ms"
    )


if __name__ == "__main__":
    cli()
