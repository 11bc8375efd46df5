"""tarsnap - snapshot a remote host's shell history.

Resolves the address of a Terraform-provisioned host, copies the remote
user's bash history into a timestamped capture file, and keeps a
deduplicated summary of every command ever captured. Can install itself
as a recurring launchd job.

Quick Start:
    tarsnap                       # fetch, aggregate, summarize
    tarsnap --show-full           # print unique lines from all captures
    tarsnap --install --delay 5m  # run every five minutes via launchd
"""

__version__ = "0.1.0"

from tarsnap.config import TarsnapConfig
from tarsnap.exceptions import TarsnapError

__all__ = ["__version__", "TarsnapConfig", "TarsnapError"]
