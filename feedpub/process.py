"""
Asynchronous external process execution.

ffmpeg and the ipfs CLI are driven through explicit argument lists; their
completion suspends the event loop instead of blocking it.
"""

import asyncio
import contextlib
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence


READ_CHUNK_SIZE = 65536

# ffmpeg rewrites its progress line in place with a bare carriage return
LINE_BREAK = re.compile(rb"\r\n|\r|\n")


@dataclass(frozen=True)
class ProcessResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _log_line(logger: logging.Logger, label: str, line: bytes) -> None:
    text = line.decode("utf-8", errors="replace").strip()
    if text:
        logger.debug(f"[{label}] {text}")


async def _drain(
    stream: asyncio.StreamReader, logger: Optional[logging.Logger], label: str
) -> bytes:
    chunks = []
    pending = b""
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
        if logger is None:
            continue
        *lines, pending = LINE_BREAK.split(pending + chunk)
        for line in lines:
            _log_line(logger, label, line)
    if logger is not None:
        _log_line(logger, label, pending)
    return b"".join(chunks)


async def run_process(
    argv: Sequence[str], logger: Optional[logging.Logger] = None
) -> ProcessResult:
    """
    Run argv to completion and capture both output streams.

    The child never outlives the call: if reading its output fails or the
    caller is cancelled, it is killed and reaped before the error propagates.

    Args:
        argv: Program and arguments; no shell is involved.
        logger: If given, every output line is also logged at DEBUG level.
            Both "\\n" and "\\r" end a line.

    Raises:
        FileNotFoundError: If the program does not exist.
    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    label = argv[0]
    try:
        stdout, stderr = await asyncio.gather(
            _drain(process.stdout, logger, label),
            _drain(process.stderr, logger, label),
        )
        returncode = await process.wait()
    finally:
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
    return ProcessResult(tuple(argv), returncode, stdout, stderr)
