"""Install tarsnap as a recurring launchd job.

Renders a property list for the current executable, writes it to the
LaunchAgents directory, loads it with ``launchctl load`` and checks
``launchctl list`` for the new label.
"""

import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from jinja2 import Template, TemplateError

from tarsnap.config import TarsnapConfig
from tarsnap.exceptions import CommandError, StorageError, TemplateRenderError
from tarsnap.logging import get_logger
from tarsnap.runner import CommandRunner, format_command

logger = get_logger(__name__)

DESCRIPTOR_SUFFIX = ".plist"
MODULE_ENTRY_POINT = "tarsnap.cli"

PLIST_TEMPLATE = """\
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
  <key>Label</key>
  <string>{{ task.label }}</string>

  <key>ProgramArguments</key>
  <array>
{%- for arg in task.program_arguments %}
    <string>{{ arg }}</string>
{%- endfor %}
  </array>

  <key>EnvironmentVariables</key>
  <dict>
    <key>PATH</key>
    <string>/usr/local/bin:{{ task.path }}:/usr/bin:/bin:/usr/sbin:/sbin:</string>
  </dict>

  <key>StartInterval</key>
  <integer>{{ task.start_interval }}</integer>

  <key>StandardOutPath</key>
  <string>{{ task.log_path }}</string>

  <key>StandardErrorPath</key>
  <string>{{ task.log_path }}</string>

  <key>WorkingDirectory</key>
  <string>{{ task.cwd }}</string>

  <key>RunAtLoad</key>
  {% if task.run_at_load %}<true/>{% else %}<false/>{% endif %}
</dict>
</plist>
"""


@dataclass
class LaunchdTask:
    """Values rendered into the launchd property list.

    Attributes:
        label: launchd label, ``<label>.<ip>``
        ip: Host address the task fetches from
        program_arguments: Executable followed by its arguments
        path: Directory of the executable, added to PATH
        cwd: Working directory of the job
        log_path: File receiving stdout and stderr
        start_interval: Seconds between runs
        run_at_load: Whether launchd runs the job as soon as it is loaded
    """

    label: str
    ip: str
    program_arguments: list[str] = field(default_factory=list)
    path: str = ""
    cwd: str = "."
    log_path: str = "/tmp/tarsnap.log"
    start_interval: int = 600
    run_at_load: bool = False


@dataclass
class InstallResult:
    path: Path
    label: str
    loaded: bool


def task_label(label: str, ip: str) -> str:
    return f"{label}.{ip}"


def descriptor_path(config: TarsnapConfig, label: str) -> Path:
    """Where the property list for label is written."""
    return Path(config.launch_agents_dir).expanduser() / f"{label}{DESCRIPTOR_SUFFIX}"


def resolve_program(argv0: str | None = None) -> tuple[list[str], Path]:
    """Return the command that starts tarsnap again and the directory for PATH.

    An installed console script is used as is. When tarsnap runs from a
    module or a source file (``python -m tarsnap.cli``), argv0 cannot be
    executed on its own, so the job runs the current interpreter with
    ``-m tarsnap.cli`` instead.
    """
    exe_path = Path(argv0 or sys.argv[0]).resolve()
    if exe_path.suffix == ".py" or not exe_path.is_file() or not os.access(exe_path, os.X_OK):
        # unresolved, so a venv interpreter stays inside its venv
        interpreter = Path(sys.executable).absolute()
        return [str(interpreter), "-m", MODULE_ENTRY_POINT], interpreter.parent
    return [str(exe_path)], exe_path.parent


def render_plist(task: LaunchdTask, template: str = PLIST_TEMPLATE) -> str:
    """Render the property list for task.

    Values are XML-escaped.

    Raises:
        TemplateRenderError: If the template cannot be parsed or rendered
    """
    try:
        return Template(template, autoescape=True, keep_trailing_newline=True).render(task=task)
    except TemplateError as e:
        raise TemplateRenderError(f"Failed to execute template: {e}", label=task.label) from e


def build_task(
    config: TarsnapConfig,
    ip: str,
    executable: Path | None = None,
    config_file: Path | None = None,
) -> LaunchdTask:
    """Describe the launchd job that runs tarsnap against ip.

    An explicit executable is scheduled as given. The config file, when
    there is one, is passed on so the job runs with the same settings.
    """
    if executable is None:
        command, exe_dir = resolve_program()
    else:
        exe_path = Path(executable).resolve()
        command, exe_dir = [str(exe_path)], exe_path.parent

    logger.debug("Executable", command=command, directory=exe_dir)

    arguments = [*command, "--ip", ip]
    if config_file is not None:
        arguments += ["--config", str(Path(config_file).resolve())]

    return LaunchdTask(
        label=task_label(config.label, ip),
        ip=ip,
        program_arguments=arguments,
        path=str(exe_dir),
        cwd=str(Path(config.cwd).expanduser().resolve()),
        log_path=str(config.log_path),
        start_interval=int(config.delay),
    )


def write_descriptor(path: Path, content: str) -> None:
    """Write (or overwrite) the property list file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    except OSError as e:
        raise StorageError(f"Failed to create {DESCRIPTOR_SUFFIX} file: {e}", path=path) from e


def load_task(config: TarsnapConfig, runner: CommandRunner, path: Path) -> None:
    """Register the property list with launchd.

    Raises:
        CommandError: If ``launchctl load`` exits non-zero
    """
    args = ["load", str(path)]
    logger.info(f"running command {format_command(config.launchctl_bin, args)}")
    result = runner.run(config.launchctl_bin, args)
    if not result.ok:
        raise CommandError(
            f"Failed to load {path}: exit status {result.rc}: {result.output.strip()}",
            rc=result.rc,
            output=result.output,
        )


def task_is_listed(config: TarsnapConfig, runner: CommandRunner, label: str) -> bool:
    """Check ``launchctl list`` for a line mentioning label.

    Raises:
        CommandError: If ``launchctl list`` exits non-zero
    """
    result = runner.run(config.launchctl_bin, ["list"])
    if not result.ok:
        raise CommandError(
            f"Failed to execute {config.launchctl_bin} list: exit status {result.rc}",
            rc=result.rc,
            output=result.output,
        )

    for line in result.stdout.splitlines():
        if label in line:
            logger.debug(line)
            return True
    return False


def verify_task(
    config: TarsnapConfig,
    runner: CommandRunner,
    label: str,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Look for label in ``launchctl list``, checking once more after a pause.

    Only reports the outcome; a missing task is not loaded again.
    """
    found = task_is_listed(config, runner, label)
    if not found:
        sleep(config.verify_delay)
        found = task_is_listed(config, runner, label)

    if found:
        logger.info(f"{label} found, load was successful")
    else:
        logger.warning(f"{label} not found, load failed")
    return found


def install_task(
    config: TarsnapConfig,
    ip: str,
    runner: CommandRunner,
    executable: Path | None = None,
    sleep: Callable[[float], None] = time.sleep,
    config_file: Path | None = None,
) -> InstallResult:
    """Write, load and verify the launchd job for ip.

    Re-installing with the same label and address overwrites the property
    list and loads it again; whatever launchd does with a duplicate load is
    left to launchd.

    Args:
        config: Settings (label, cwd, delay, log path, directories)
        ip: Validated host address
        runner: Command runner used for launchctl
        executable: Program to schedule (defaults to the running one)
        sleep: Pause function used between verification checks
        config_file: YAML file the scheduled job should load

    Returns:
        InstallResult with the descriptor path, label and verification outcome
    """
    task = build_task(config, ip, executable, config_file=config_file)
    path = descriptor_path(config, task.label)

    logger.info("Creating launchd .plist file...", path=path)
    content = render_plist(task)
    write_descriptor(path, content)
    logger.info("Successfully created launchd .plist file.")

    load_task(config, runner, path)
    loaded = verify_task(config, runner, task.label, sleep=sleep)
    return InstallResult(path=path, label=task.label, loaded=loaded)
