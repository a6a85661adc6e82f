"""Subprocess helpers for the external CLI tools."""

import logging
import subprocess
from typing import Optional, Sequence

import psutil

from .logging_setup import get_logger, log_once

logger = get_logger("commands")


def run_query(args: Sequence[str], timeout: float = 5.0) -> Optional[str]:
    """Run a one-shot query tool and return its stdout.

    Returns None when the tool is missing, times out, or exits non-zero.
    Those are treated as "no data this cycle" by the callers.
    """
    try:
        result = subprocess.run(
            list(args),
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError:
        log_once(logger, logging.WARNING, f"Command not found: {args[0]}")
        return None
    except subprocess.TimeoutExpired:
        logger.debug(f"Command timed out after {timeout}s: {' '.join(args)}")
        return None
    except OSError as e:
        logger.debug(f"Command failed to run: {' '.join(args)}: {e}")
        return None

    if result.returncode != 0:
        logger.debug(
            f"Command exited with {result.returncode}: {' '.join(args)}: {result.stderr.strip()}"
        )
        return None

    return result.stdout


def spawn_line_reader(args: Sequence[str], with_stdin: bool = False) -> subprocess.Popen:
    """Start a long-lived tool whose stdout is read line by line.

    Raises:
        OSError: The process could not be started
    """
    return subprocess.Popen(
        list(args),
        stdin=subprocess.PIPE if with_stdin else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        text=True,
        errors="replace",
        bufsize=1,
    )


def terminate_process(process: Optional[subprocess.Popen], timeout: float = 2.0) -> None:
    """Terminate a spawned tool, escalating to kill if it ignores SIGTERM."""
    if process is None or process.poll() is not None:
        return

    try:
        proc = psutil.Process(process.pid)
        proc.terminate()
        _, alive = psutil.wait_procs([proc], timeout=timeout)
        for survivor in alive:
            logger.warning(f"Process {survivor.pid} ignored SIGTERM, killing")
            survivor.kill()
    except psutil.NoSuchProcess:
        pass

    # Reap the child so it does not linger as a zombie
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(f"Process {process.pid} did not exit after kill")
