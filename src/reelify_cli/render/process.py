from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import threading
from collections import deque
from pathlib import Path
from typing import IO, Optional

from .renderer import RenderOutcome

logger = logging.getLogger(__name__)

LOG_TAIL_LINES = 20


def binary_exists(binary: str) -> bool:
    """Check if an executable is available on PATH."""
    return shutil.which(binary) is not None


def _pump(stream: IO[str], tail: deque) -> None:
    for line in stream:
        line = line.rstrip()
        if line:
            logger.debug("[render] %s", line)
            tail.append(line)
    stream.close()


def _terminate(proc: subprocess.Popen) -> None:
    if os.name == "posix":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:
        proc.kill()
    proc.wait()


def run_process(
    cmd: list[str],
    output_path: Path,
    timeout_sec: float,
    env: Optional[dict[str, str]] = None,
) -> RenderOutcome:
    """Run a render command under a deadline and classify what happened.

    Output is streamed to the log while the process runs. On expiry the whole
    process group is killed. A zero exit with a missing or empty output file
    is reported separately from a failing exit code.
    """
    logger.info("Starting render: %s", " ".join(cmd))
    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            env=env,
            start_new_session=(os.name == "posix"),
        )
    except OSError as e:
        return RenderOutcome("spawn_error", output_path, message=f"{type(e).__name__}: {e}")

    tail: deque = deque(maxlen=LOG_TAIL_LINES)
    reader = threading.Thread(target=_pump, args=(proc.stdout, tail), daemon=True)
    reader.start()

    try:
        returncode = proc.wait(timeout=timeout_sec)
    except subprocess.TimeoutExpired:
        _terminate(proc)
        reader.join(timeout=1.0)
        return RenderOutcome(
            "timeout",
            output_path,
            message=f"render exceeded {timeout_sec:g}s and was terminated",
            log_tail=list(tail),
        )

    reader.join(timeout=1.0)
    if returncode != 0:
        return RenderOutcome(
            "exit_error",
            output_path,
            returncode=returncode,
            message=f"render process exited with code {returncode}",
            log_tail=list(tail),
        )

    if not output_path.exists() or output_path.stat().st_size == 0:
        return RenderOutcome(
            "empty_output",
            output_path,
            returncode=0,
            message=f"render process succeeded but {output_path} is missing or empty",
            log_tail=list(tail),
        )

    return RenderOutcome("ok", output_path, returncode=0, log_tail=list(tail))
