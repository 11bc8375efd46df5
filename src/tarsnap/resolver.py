"""Resolve the address of the host whose history is captured.

The address comes either from an explicit override or from the
``instance_public_ip`` output of the Terraform configuration. Either way
it must be a valid IPv4 address.
"""

import ipaddress
import json
from pathlib import Path

from tarsnap.config import TarsnapConfig
from tarsnap.exceptions import CommandError, ValidationError
from tarsnap.logging import get_logger
from tarsnap.runner import CommandRunner, format_command

logger = get_logger(__name__)


def is_valid_ipv4(value: str) -> bool:
    """Check that value is a dotted-quad IPv4 address."""
    try:
        ipaddress.IPv4Address(value)
    except (ipaddress.AddressValueError, ValueError):
        return False
    return True


def parse_terraform_output(text: str, key: str = "instance_public_ip") -> str:
    """Extract ``<key>.value`` from ``terraform output -json``.

    Args:
        text: Raw JSON printed by terraform
        key: Output name

    Returns:
        The output's value as a string

    Raises:
        ValidationError: If the text is not JSON or the output is missing
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Failed to parse JSON: {e}") from e

    output = data.get(key) if isinstance(data, dict) else None
    if not isinstance(output, dict) or "value" not in output:
        raise ValidationError(f"Terraform output has no '{key}.value'", key=key)

    value = output["value"]
    if not isinstance(value, str):
        raise ValidationError(f"'{key}.value' is not a string: {value!r}", key=key)
    return value


def terraform_ip(config: TarsnapConfig, runner: CommandRunner) -> str:
    """Run terraform and return the address it reports, unvalidated."""
    tf_dir = Path(config.terraform_dir).absolute()
    args = [f"-chdir={tf_dir}", "output", "-json"]

    logger.info("Running Terraform command to get output...")
    logger.debug("Executing command", command=format_command(config.terraform_bin, args))
    result = runner.run(config.terraform_bin, args)
    if not result.ok:
        raise CommandError(
            f"Failed to execute {config.terraform_bin}: exit status {result.rc}: {result.stderr.strip()}",
            rc=result.rc,
            output=result.output,
        )

    logger.info("Parsing JSON output...")
    return parse_terraform_output(result.stdout, config.terraform_output)


def resolve_ip(
    config: TarsnapConfig,
    runner: CommandRunner,
    override: str | None = None,
) -> str:
    """Return the validated IPv4 address of the target host.

    An override is used as given and terraform is never run.

    Raises:
        CommandError: If terraform fails
        ValidationError: If the output is unusable or the address is not IPv4
    """
    if override:
        logger.info("Using IP from command line", ip=override)
        ip = override
    else:
        ip = terraform_ip(config, runner)

    if not is_valid_ipv4(ip):
        raise ValidationError(f"'{ip}' is not a valid ip", ip=ip)

    logger.debug("Resolved host address", ip=ip)
    return ip
