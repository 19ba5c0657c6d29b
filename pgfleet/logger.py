"""
Logging system for pgfleet
Provides job log files with clean console output
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from rich.console import Console
from rich.logging import RichHandler

from pgfleet.constants import LOG_DATETIME_FORMAT

console = Console()

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def strip_ansi_codes(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_ESCAPE.sub("", text)


def setup_logging(verbose: bool = False) -> None:
    """
    Install a rich handler on the root logger.

    Args:
        verbose: If True, log at DEBUG level instead of INFO
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


class JobLogWriter:
    """
    Writes the captured output of one job to its log file.

    - Header block with job identity
    - ANSI-stripped output lines, flushed in real-time
    - Footer with final status
    """

    def __init__(self, log_path: Path, job_id: str, name: str = "", command: str = ""):
        """
        Open log file and write header

        Args:
            log_path: Path of the log file to create
            job_id: Job identity
            name: Human readable job name
            command: Full ansible-playbook command line
        """
        self.log_path = Path(log_path)
        self.job_id = job_id
        self.name = name
        self.command = command
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_file: Optional[TextIO] = open(self.log_path, "w", buffering=1)
        self._write_log_header()

    def _write_log_header(self):
        """Write log file header"""
        header = f"""{"=" * 80}
pgfleet job log
{"=" * 80}
Job: {self.job_id}
Name: {self.name}
Command: {self.command}
Started: {datetime.now().strftime(LOG_DATETIME_FORMAT)}
{"=" * 80}
"""
        self.log_file.write(header)
        self.log_file.flush()

    def write(self, data: str) -> int:
        """File-like write used as a job output sink."""
        if self.log_file is None:
            return 0
        self.log_file.write(strip_ansi_codes(data))
        self.log_file.flush()
        return len(data)

    def flush(self) -> None:
        if self.log_file:
            self.log_file.flush()

    def close(self, status: str = "") -> None:
        """Write footer and close log file"""
        if self.log_file:
            footer = f"""{"=" * 80}
Completed: {datetime.now().strftime(LOG_DATETIME_FORMAT)}
Status: {status.upper() or "UNKNOWN"}
{"=" * 80}
"""
            self.log_file.write(footer)
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        self.close("failed" if exc_type is not None else "")
        return False
