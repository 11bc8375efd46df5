"""Command-line interface for tarsnap."""

from pathlib import Path
from typing import Any

import click

from tarsnap import __version__
from tarsnap.config import TarsnapConfig, load_config, parse_duration
from tarsnap.exceptions import ConfigError, TarsnapError
from tarsnap.logging import (
    configure_logging,
    get_level_from_name,
    get_level_from_verbosity,
    get_logger,
)
from tarsnap.pipeline import run_fetch, run_install, show_full
from tarsnap.report import print_capture_report
from tarsnap.runner import SubprocessRunner

logger = get_logger("tarsnap.cli")


class Duration(click.ParamType):
    """Click parameter accepting Go-style durations, converted to whole seconds."""

    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> int:
        if isinstance(value, int):
            return value
        try:
            return int(parse_duration(str(value)))
        except ConfigError as e:
            self.fail(str(e), param, ctx)


def build_config(
    config_file: str | None,
    label: str | None,
    cwd: str | None,
    delay: int | None,
) -> TarsnapConfig:
    """Defaults, then the YAML file, then command-line flags."""
    config = load_config(config_file) if config_file else TarsnapConfig()
    return config.merged(
        label=label,
        cwd=Path(cwd) if cwd is not None else None,
        delay=delay,
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--ip", "-ip", "ip", default=None, help="Host address (skips terraform lookup)")
@click.option("--label", "-label", "label", default=None, help="Label prefix for the launchd task [default: com.tarsnap]")
@click.option("--cwd", "-cwd", "cwd", type=click.Path(file_okay=False), default=None,
              help="Working directory for the launchd task [default: .]")
@click.option("--show-full", "-show-full", "show_full_flag", is_flag=True,
              help="Print the unique lines of all captures and exit")
@click.option("--install", "-install", "install", is_flag=True, help="Install the launchd task and exit")
@click.option("--delay", "-delay", "delay", type=Duration(), default=None,
              help="Interval between scheduled fetches, e.g. 90s, 5m, 1h [default: 10m]")
@click.option("--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="YAML configuration file")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v debug, -vv trace)")
@click.option("--log-level", type=click.Choice(["trace", "debug", "info", "warning", "error"]), default=None,
              help="Set log level explicitly (overrides -v)")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also write logs to this file")
@click.version_option(__version__, prog_name="tarsnap")
@click.pass_context
def cli(
    ctx: click.Context,
    ip: str | None,
    label: str | None,
    cwd: str | None,
    show_full_flag: bool,
    install: bool,
    delay: int | None,
    config_file: str | None,
    verbose: int,
    log_level: str | None,
    log_file: str | None,
) -> None:
    """Snapshot the bash history of a Terraform-provisioned host.

    With no mode flag, resolves the host address, copies
    ~/.bash_history into data/bash_history/ and rewrites
    data/bash_history/summary.txt with the unique commands.

    Examples:
        tarsnap

        tarsnap --ip 10.0.0.5 -v

        tarsnap --show-full

        tarsnap --install --label com.example --delay 5m
    """
    level = get_level_from_name(log_level) if log_level else get_level_from_verbosity(verbose)
    try:
        configure_logging(level=level, log_file=log_file)
    except OSError as e:
        raise click.ClickException(f"Failed to open log file {log_file}: {e}") from e

    runner = ctx.obj if ctx.obj is not None else SubprocessRunner()

    try:
        config = build_config(config_file, label, cwd, delay)

        if show_full_flag:
            for line in show_full(config):
                click.echo(line)
            return

        if install:
            result = run_install(
                config,
                runner,
                ip_override=ip,
                config_file=Path(config_file) if config_file else None,
            )
            click.echo(f"Installed {result.label} at {result.path}")
            if not result.loaded:
                click.echo(f"{result.label} not found in launchctl list", err=True)
            return

        summary = run_fetch(config, runner, ip_override=ip)
        print_capture_report(summary.aggregate, summary.stats, root=summary.summary.parent)
        logger.info("Finished.", capture=summary.capture, summary=summary.summary)
    except TarsnapError as e:
        logger.error(e.msg, **e.context)
        raise click.ClickException(str(e)) from e


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
