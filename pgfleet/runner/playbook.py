"""
Playbook Command

Builds and executes one ansible-playbook invocation with streamed output
and cooperative cancellation.
"""

import codecs
import json
import logging
import os
import selectors
import shlex
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from pgfleet.constants import (
    ANSIBLE_PLAYBOOK_BIN,
    ANSIBLE_PLAYBOOK_BIN_ENV,
    CANCEL_GRACE_SECONDS,
    OUTPUT_POLL_INTERVAL,
)
from pgfleet.exceptions import CancellationError, ExternalProcessError

logger = logging.getLogger(__name__)


def playbook_binary() -> str:
    """Return the ansible-playbook executable, overridable by environment."""
    return os.environ.get(ANSIBLE_PLAYBOOK_BIN_ENV) or ANSIBLE_PLAYBOOK_BIN


@dataclass
class PlaybookOptions:
    """Raw ansible-playbook options."""

    inventory: str = ""
    limit: str = ""
    tags: str = ""
    extra_vars: Dict[str, Any] = field(default_factory=dict)
    forks: str = ""

    def to_args(self) -> List[str]:
        args: List[str] = []
        if self.extra_vars:
            args += ["--extra-vars", json.dumps(self.extra_vars)]
        if self.forks:
            args += ["--forks", str(self.forks)]
        if self.inventory:
            args += ["--inventory", self.inventory]
        if self.limit:
            args += ["--limit", self.limit]
        if self.tags:
            args += ["--tags", self.tags]
        return args


class PlaybookCommand:
    """
    One ansible-playbook run.

    Output of the child is forwarded to file-like sinks as it arrives.
    Cancellation is polled between reads; a cancelled child receives
    SIGTERM, then SIGKILL after a grace period.
    """

    def __init__(
        self,
        playbook: str,
        options: Optional[PlaybookOptions] = None,
        cwd: Optional[Path] = None,
        binary: Optional[str] = None,
    ):
        """
        Args:
            playbook: Playbook file name, relative to cwd
            options: Playbook options
            cwd: Directory the child runs in
            binary: Executable, defaults to ``playbook_binary()``
        """
        self.playbook = playbook
        self.options = options if options is not None else PlaybookOptions()
        self.cwd = Path(cwd) if cwd else None
        self.binary = binary or playbook_binary()

    def argv(self) -> List[str]:
        return [self.binary, *self.options.to_args(), self.playbook]

    def __str__(self) -> str:
        return shlex.join(self.argv())

    def run(
        self,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        env: Optional[Dict[str, str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        """
        Run the playbook to completion.

        Args:
            stdout: Sink for child stdout (process stdout if None)
            stderr: Sink for child stderr (merged into stdout if None)
            env: Extra environment for the child
            cancel_event: Set to request termination

        Returns:
            Exit code (always 0, non-zero exits raise)

        Raises:
            ExternalProcessError: If the child cannot be launched or exits non-zero
            CancellationError: If cancel_event was set before the child exited
        """
        if cancel_event is not None and cancel_event.is_set():
            raise CancellationError(f"cancelled before start: {self}")

        child_env = os.environ.copy()
        if env:
            child_env.update(env)

        try:
            process = subprocess.Popen(
                self.argv(),
                cwd=str(self.cwd) if self.cwd else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE if stderr is not None else subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                env=child_env,
            )
        except OSError as e:
            raise ExternalProcessError(f"fail to launch {self.binary}: {e}") from e

        out_sink = stdout if stdout is not None else sys.stdout
        streams = {process.stdout: _SinkWriter(out_sink)}
        if process.stderr is not None:
            streams[process.stderr] = _SinkWriter(stderr)

        # Use selectors so cancellation is noticed while the child is quiet
        sel = selectors.DefaultSelector()
        for stream, writer in streams.items():
            sel.register(stream, selectors.EVENT_READ, writer)

        cancelled = False
        try:
            while sel.get_map():
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                for key, _ in sel.select(timeout=OUTPUT_POLL_INTERVAL):
                    chunk = os.read(key.fd, 65536)
                    if not chunk:
                        sel.unregister(key.fileobj)
                        continue
                    key.data.write(chunk)
        finally:
            sel.close()

        if cancelled:
            self._terminate(process)
        returncode = process.wait()
        for stream, writer in streams.items():
            writer.close()
            stream.close()

        if cancelled:
            raise CancellationError(f"job cancelled: {self}")
        if returncode != 0:
            raise ExternalProcessError(
                f"{self.binary} {self.playbook} failed", returncode=returncode
            )
        return returncode

    def _terminate(self, process: subprocess.Popen) -> None:
        logger.warning("terminating %s (pid %d)", self.binary, process.pid)
        process.terminate()
        try:
            process.wait(timeout=CANCEL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning("%s did not exit, killing pid %d", self.binary, process.pid)
            process.kill()


class _SinkWriter:
    """Decodes raw child output and forwards text to a sink."""

    def __init__(self, sink: Optional[TextIO]):
        self.sink = sink
        self.decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.broken = False

    def write(self, chunk: bytes) -> None:
        self._emit(self.decoder.decode(chunk))

    def close(self) -> None:
        self._emit(self.decoder.decode(b"", final=True))

    def _emit(self, text: str) -> None:
        if not text or self.sink is None or self.broken:
            return
        try:
            self.sink.write(text)
            self.sink.flush()
        except (BlockingIOError, OSError, ValueError) as e:
            # reader went away (closed pipe or file); keep draining the child
            logger.debug("output sink closed: %s", e)
            self.broken = True
