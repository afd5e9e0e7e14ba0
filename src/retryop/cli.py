"""CLI interface for retryop"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Tuple

import click
from pydantic import ValidationError

from retryop.domain.config.retry import RetrySettings
from retryop.domain.errors import ConfigurationError, RetryFailure
from retryop.domain.models.time_unit import TimeUnit
from retryop.infrastructure.config.config_manager import ConfigManager
from retryop.infrastructure.http_client import get_with_retries
from retryop.infrastructure.retry import new_builder

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _resolve_retry_settings(
    config_manager: ConfigManager,
    max_attempts: Optional[int],
    delay: Optional[float],
    unit: Optional[str],
    retry_on: Tuple[str, ...],
) -> RetrySettings:
    """Merge CLI overrides into the configured retry settings

    Raises:
        ValidationError: If the merged settings are invalid
    """
    values = config_manager.get_retry_settings().model_dump()
    if max_attempts is not None:
        values["max_attempts"] = max_attempts
    if delay is not None:
        values["delay"] = delay
    if unit is not None:
        values["unit"] = unit.lower()
    if retry_on:
        values["retry_on"] = list(retry_on)
    return RetrySettings(**values)


def _log_attempt(max_attempts: int):
    def _listener(attempt_index: int) -> None:
        logger.info(f"Attempt {attempt_index + 1}/{max_attempts}")

    return _listener


def retry_options(func):
    """Attach the retry policy options shared by all commands"""
    func = click.option(
        "--retry-on",
        multiple=True,
        help="Exception class to retry on (repeatable). Overrides config.",
    )(func)
    func = click.option(
        "--unit",
        type=click.Choice([u.value for u in TimeUnit], case_sensitive=False),
        help="Time unit of --delay. Overrides config.",
    )(func)
    func = click.option("--delay", type=float, help="Delay between attempts. Overrides config.")(func)
    func = click.option(
        "--max-attempts", type=int, help="Maximum number of attempts. Overrides config."
    )(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .retryop.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """retryop - retry flaky commands and requests"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command(name="exec", context_settings={"ignore_unknown_options": True})
@retry_options
@click.option(
    "--accept-exit",
    type=int,
    multiple=True,
    help="Exit code that ends the retries (repeatable, default: 0).",
)
@click.option("--timeout", type=float, help="Per-attempt timeout in seconds.")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def exec_command(
    ctx,
    max_attempts: Optional[int],
    delay: Optional[float],
    unit: Optional[str],
    retry_on: Tuple[str, ...],
    accept_exit: Tuple[int, ...],
    timeout: Optional[float],
    command: Sequence[str],
):
    """Run COMMAND until it exits with an accepted code.

    A timed-out attempt is retried; a command that cannot be started is not.
    """
    verbose = ctx.obj.get("verbose", False)
    accepted = set(accept_exit) or {0}

    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
        settings = _resolve_retry_settings(config_manager, max_attempts, delay, unit, retry_on)
    except (ConfigurationError, ValidationError) as e:
        _die(str(e), verbose=verbose, exc=e)

    def _run() -> subprocess.CompletedProcess:
        logger.debug(f"Running: {' '.join(command)}")
        return subprocess.run(list(command), timeout=timeout, check=False)

    def _rejected(proc: subprocess.CompletedProcess) -> bool:
        if proc.returncode in accepted:
            return False
        logger.warning(f"Command exited with {proc.returncode}")
        return True

    try:
        operator = (
            new_builder()
            .from_settings(settings)
            .operation(_run)
            .retry_predicate(_rejected)
            .on_attempt(_log_attempt(max(settings.max_attempts, 1)))
        )
        if not settings.retry_on:
            operator.retry_on(subprocess.TimeoutExpired)
        proc = operator.build().retry()
    except RetryFailure as e:
        _die(f"Command failed: {e.cause}", verbose=verbose, exc=e)

    if proc.returncode not in accepted:
        click.echo(f"Command still failing after {settings.max_attempts} attempt(s)", err=True)
    ctx.exit(proc.returncode)


@cli.command()
@retry_options
@click.argument("url", type=str)
@click.pass_context
def http(
    ctx,
    max_attempts: Optional[int],
    delay: Optional[float],
    unit: Optional[str],
    retry_on: Tuple[str, ...],
    url: str,
):
    """GET URL, retrying on network errors and retryable statuses."""
    verbose = ctx.obj.get("verbose", False)

    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
        settings = _resolve_retry_settings(config_manager, max_attempts, delay, unit, retry_on)
        http_settings = config_manager.get_http_settings()
    except (ConfigurationError, ValidationError) as e:
        _die(str(e), verbose=verbose, exc=e)

    try:
        response = get_with_retries(
            url,
            retry=settings,
            http=http_settings,
            listener=_log_attempt(max(settings.max_attempts, 1)),
        )
    except RetryFailure as e:
        _die(f"Request failed: {e.cause}", verbose=verbose, exc=e)

    click.echo(f"{response.status_code} {response.reason}")
    if not response.ok:
        raise click.ClickException(f"HTTP {response.status_code} from {url}")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
