"""CLI entrypoint for dayflow-export."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import rich_click as click

from dayflow_export import __version__
from dayflow_export.cards.intervals import CoverageLoopLimitError
from dayflow_export.config import ConfigError
from dayflow_export.controllers import (
    CardsValidateCommand,
    ExportCliController,
    QueueCommand,
    WebhookSendCommand,
)
from dayflow_export.delivery.webhook import WebhookConfigError

click.rich_click.USE_MARKDOWN = True
CommandT = TypeVar("CommandT")
ResultT = TypeVar("ResultT")
CONTROLLER = ExportCliController()

CONFIG_OPTION = click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Path to config.json. Defaults to ~/.dayflow/config.json.",
)
QUEUE_DIR_OPTION = click.option(
    "--queue-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Queue directory override. Defaults to queue.directory from config.",
)


@click.group()
@click.version_option(version=__version__, prog_name="dayflow-export")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def dayflow_export(log_level: str) -> None:
    """Activity card validation and durable webhook delivery."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@dayflow_export.group()
def cards() -> None:
    """Activity card commands."""


@cards.command("validate")
@CONFIG_OPTION
@click.option(
    "--existing",
    "existing_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=True,
    help="JSON file with the cards that define required coverage.",
)
@click.option(
    "--proposed",
    "proposed_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    required=True,
    help="JSON file with the regenerated cards to validate.",
)
@click.option(
    "--deliver/--no-deliver",
    default=False,
    show_default=True,
    help="Send accepted cards to the configured webhook.",
)
def cards_validate(
    config_path: Path | None,
    existing_path: Path,
    proposed_path: Path,
    deliver: bool,
) -> None:
    """Check that regenerated cards cover the existing ones without gaps."""

    try:
        outcome = CONTROLLER.validate_cards(
            CardsValidateCommand(
                config_path=config_path,
                existing_path=existing_path,
                proposed_path=proposed_path,
                deliver=deliver,
            ),
        )
    except (ConfigError, WebhookConfigError, CoverageLoopLimitError) as error:
        raise click.ClickException(str(error)) from error
    except ValueError as error:
        raise click.BadParameter(str(error)) from error
    _emit_lines(outcome.lines)
    if not outcome.success:
        raise click.ClickException("Card validation failed.")


@dayflow_export.group()
def queue() -> None:
    """Persistent delivery queue commands."""


@queue.command("stats")
@CONFIG_OPTION
@QUEUE_DIR_OPTION
def queue_stats(config_path: Path | None, queue_dir: Path | None) -> None:
    """Show how many payloads are waiting for delivery."""

    _emit_lines(_run_config_safe(CONTROLLER.queue_stats, QueueCommand(config_path, queue_dir)))


@queue.command("peek")
@CONFIG_OPTION
@QUEUE_DIR_OPTION
def queue_peek(config_path: Path | None, queue_dir: Path | None) -> None:
    """Print pending payloads without removing them."""

    _emit_lines(_run_config_safe(CONTROLLER.queue_peek, QueueCommand(config_path, queue_dir)))


@queue.command("clear")
@CONFIG_OPTION
@QUEUE_DIR_OPTION
@click.confirmation_option(prompt="Delete all pending payloads?")
def queue_clear(config_path: Path | None, queue_dir: Path | None) -> None:
    """Delete every pending payload (in-flight claims are untouched)."""

    _emit_lines(_run_config_safe(CONTROLLER.queue_clear, QueueCommand(config_path, queue_dir)))


@queue.command("flush")
@CONFIG_OPTION
@QUEUE_DIR_OPTION
def queue_flush(config_path: Path | None, queue_dir: Path | None) -> None:
    """Resend every queued payload; failures stay queued."""

    outcome = _run_config_safe(CONTROLLER.queue_flush, QueueCommand(config_path, queue_dir))
    _emit_lines(outcome.lines)
    if not outcome.success:
        raise click.ClickException("Some payloads could not be delivered and were requeued.")


@dayflow_export.group()
def webhook() -> None:
    """Webhook delivery commands."""


@webhook.command("send")
@CONFIG_OPTION
@click.option("--payload", default=None, help="Payload string to send.")
@click.option(
    "--payload-file",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    default=None,
    help="Read the payload from a file.",
)
@click.option(
    "--queue-on-failure/--no-queue-on-failure",
    default=True,
    show_default=True,
    help="Queue the payload for a later flush when delivery fails.",
)
def webhook_send(
    config_path: Path | None,
    payload: str | None,
    payload_file: Path | None,
    queue_on_failure: bool,
) -> None:
    """Send one payload to the configured webhook with retries."""

    if (payload is None) == (payload_file is None):
        raise click.UsageError("Pass exactly one of --payload or --payload-file.")
    if payload_file is not None:
        payload = payload_file.read_text("utf-8")
    outcome = _run_config_safe(
        CONTROLLER.webhook_send,
        WebhookSendCommand(
            config_path=config_path,
            payload=payload or "",
            queue_on_failure=queue_on_failure,
        ),
    )
    _emit_lines(outcome.lines)
    if not outcome.success:
        raise click.ClickException("Webhook delivery failed.")


def _run_config_safe(handler: Callable[[CommandT], ResultT], command: CommandT) -> ResultT:
    try:
        return handler(command)
    except (ConfigError, WebhookConfigError) as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    dayflow_export()
