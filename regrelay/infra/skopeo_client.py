"""
Skopeo execution infrastructure for regrelay.

All skopeo invocations go through ``run_skopeo``, making them:
- Easy to replace with a fake in tests
- Consistent in error handling (SkopeoError on launch failure or exit != 0)
- Tolerant of output that is not valid UTF-8
- Isolated from the relay's command assembly
"""

import logging
import subprocess
from typing import List, Optional, TextIO

from ..domain.platform import Platform

logger = logging.getLogger(__name__)

DEFAULT_BINARY = "skopeo"


class SkopeoError(Exception):
    """skopeo could not be started or exited non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


def _pump(stream, sink: Optional[TextIO]) -> None:
    for line in stream:
        if sink is not None:
            sink.write(line)
    if sink is not None and hasattr(sink, 'flush'):
        sink.flush()


def run_skopeo(
    out: Optional[TextIO],
    err: Optional[TextIO],
    verbose: bool,
    *args: str,
    binary: str = DEFAULT_BINARY,
) -> None:
    """
    Run skopeo with the given arguments.

    Output only reaches the sinks when ``verbose`` is set; otherwise it is
    discarded. Output is streamed line by line. When ``out`` and ``err``
    are the same sink, stderr is merged into stdout so lines keep their
    order. Bytes that are not valid UTF-8 are replaced.

    Args:
        out: Sink for stdout (None discards it)
        err: Sink for stderr (None discards it)
        verbose: Attach the sinks to skopeo's output
        *args: skopeo arguments
        binary: skopeo executable name or path

    Raises:
        SkopeoError: if the process cannot be launched or exits non-zero
    """
    cmd = [binary, *args]
    if not verbose:
        out = err = None

    merged = out is not None and out is err
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE if out is not None else subprocess.DEVNULL,
            stderr=_stderr_target(err, merged),
            encoding='utf-8',
            errors='replace',
        )
    except OSError as e:
        raise SkopeoError(f"cannot launch {binary}: {e}") from e

    with proc:
        if merged:
            _pump(proc.stdout, out)
            returncode = proc.wait()
        else:
            stdout, stderr = proc.communicate()
            if out is not None and stdout:
                out.write(stdout)
            if err is not None and stderr:
                err.write(stderr)
            returncode = proc.returncode

    if returncode != 0:
        raise SkopeoError(f"{binary} exited with code {returncode}", returncode)


def _stderr_target(err: Optional[TextIO], merged: bool) -> int:
    if merged:
        return subprocess.STDOUT
    if err is None:
        return subprocess.DEVNULL
    return subprocess.PIPE


def add_platform_overrides(args: List[str], platform: str) -> List[str]:
    """
    Return a new argument list with skopeo's platform override flags.

    The overrides are global skopeo options, so they go in front of the
    sub-operation.
    """
    pinned = Platform.parse(platform)
    overrides = [
        f"--override-os={pinned.os}",
        f"--override-arch={pinned.arch}",
    ]
    if pinned.variant:
        overrides.append(f"--override-variant={pinned.variant}")
    return overrides + list(args)
