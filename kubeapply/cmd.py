"""Running commands with their output streamed line by line to printers."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from collections.abc import Callable, Collection, Iterable
from typing import IO

logger = logging.getLogger(__name__)

Printer = Callable[[str], None]


def logging_info_printer(prefix: str) -> Printer:
    """Return a printer that logs each line at info level."""

    def printer(line: str) -> None:
        logger.info("%s %s", prefix, line)

    return printer


def logging_warn_printer(prefix: str) -> Printer:
    """Return a printer that logs each line at warning level."""

    def printer(line: str) -> None:
        logger.warning("%s %s", prefix, line)

    return printer


def logging_debug_printer(prefix: str) -> Printer:
    """Return a printer that logs each line at debug level."""

    def printer(line: str) -> None:
        logger.debug("%s %s", prefix, line)

    return printer


def _pump(stream: IO[bytes], printer: Printer) -> None:
    for raw in stream:
        line = raw.decode("utf-8", errors="replace")
        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
        printer(line)


def run_cmd_with_printers(
    command: str,
    args: Iterable[str],
    extra_env: Iterable[str],
    blocked_env: Collection[str],
    stdout_printer: Printer,
    stderr_printer: Printer,
) -> None:
    """Run a command, passing each output line to the matching printer.

    The child inherits the current environment minus the names in blocked_env,
    plus the "NAME=value" entries of extra_env. A non-zero exit status raises
    subprocess.CalledProcessError.
    """
    argv = [command, *args]
    logger.debug("Running %s with args %s", command, argv[1:])

    env = {key: value for key, value in os.environ.items() if key not in blocked_env}
    for entry in extra_env:
        key, _, value = entry.partition("=")
        env[key] = value

    with subprocess.Popen(
        argv,
        env=env,
        stdin=None,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    ) as process:
        pumps = [
            threading.Thread(target=_pump, args=(process.stdout, stdout_printer), daemon=True),
            threading.Thread(target=_pump, args=(process.stderr, stderr_printer), daemon=True),
        ]
        for pump in pumps:
            pump.start()
        for pump in pumps:
            pump.join()
        returncode = process.wait()

    if returncode != 0:
        raise subprocess.CalledProcessError(returncode, argv)