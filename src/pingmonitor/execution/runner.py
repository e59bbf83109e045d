"""
Process execution for ping commands.

This module runs an argument vector either blocking or on the asyncio event
loop and normalises whatever happened into an ``ExecutionOutcome``:

- ``run_command_sync`` blocks until exit or timeout. On timeout the process is
  terminated and the outcome is returned with ``timed_out=True``.
- ``run_command_async`` drains stdout/stderr while the process runs and races
  completion against the timeout and the cancellation token. Timeout and
  cancellation are raised as ``ProbeTimeoutError`` / ``ProbeAbortedError``.

Commands are always spawned from an argument vector, never through a shell.
"""

import asyncio
import logging
import math
import signal
import subprocess
from typing import List, Optional, Sequence

import psutil

from ..models.results import ExecutionOutcome
from ..system.cancellation import CancellationToken
from ..validation import ErrorSeverity, handle_error
from .errors import CommandError, ProbeAbortedError, ProbeTimeoutError

logger = logging.getLogger(__name__)


class TimeoutConstants:
    """
    Centralized timeout configuration for process execution.
    """
    # Added on top of the worst-case ping duration.
    SAFETY_BUFFER_SECONDS = 5

    # Process termination phases
    TERMINATION_GRACEFUL_TIMEOUT = 2.0
    TERMINATION_FORCE_TIMEOUT = 1.0

    # Pipe reads
    READ_CHUNK_SIZE = 4096
    # Pipes of a dead child reach EOF almost at once; bound the wait anyway.
    PIPE_DRAIN_TIMEOUT = 1.0


def calculate_process_timeout(count: int, timeout_seconds: float, interval_seconds: float) -> int:
    """
    Compute the deadline for a whole ping invocation.

    The worst case is every echo waiting its full per-reply timeout plus the
    inter-packet interval. A count of 0 (run forever) is treated as 1, which
    is what a single streamed attempt runs.

    Args:
        count: Number of echo requests
        timeout_seconds: Per-reply timeout
        interval_seconds: Delay between echo requests

    Returns:
        Whole seconds, ``ceil(count * (timeout + interval)) + 5``

    >>> calculate_process_timeout(1, 5, 1)
    11
    >>> calculate_process_timeout(3, 5, 1)
    23
    """
    effective_count = max(count, 1)
    return math.ceil(effective_count * (timeout_seconds + interval_seconds)) + TimeoutConstants.SAFETY_BUFFER_SECONDS


def _signal_name(returncode: Optional[int]) -> Optional[str]:
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return f"SIG{-returncode}"


def _build_outcome(stdout: str, stderr: str, returncode: Optional[int]) -> ExecutionOutcome:
    """Normalise a raw exit status; a negative status means killed by signal."""
    signal_name = _signal_name(returncode)
    if signal_name is not None:
        returncode = None
    return ExecutionOutcome(
        stdout=stdout or "",
        stderr=stderr or "",
        returncode=returncode,
        signal=signal_name,
    )


def _check_argv(argv: Sequence[str]) -> List[str]:
    if not argv:
        raise CommandError("Cannot execute an empty command", argv)
    return [str(arg) for arg in argv]


def terminate_process(pid: int, name: str) -> None:
    """
    Terminate a process and its children, escalating from SIGTERM to SIGKILL.

    Args:
        pid: Process ID to terminate
        name: Human-readable name used in log messages
    """
    if pid <= 0:
        logger.warning(f"Invalid PID {pid} for {name}, skipping termination")
        return

    try:
        parent = psutil.Process(pid)
        processes = [parent] + parent.children(recursive=True)
    except psutil.NoSuchProcess:
        logger.debug(f"Process {name} (PID: {pid}) already terminated")
        return

    for process in processes:
        try:
            process.terminate()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending SIGTERM to PID {process.pid}")

    _, still_alive = psutil.wait_procs(processes, timeout=TimeoutConstants.TERMINATION_GRACEFUL_TIMEOUT)
    if not still_alive:
        logger.debug(f"{name} (PID: {pid}) terminated gracefully")
        return

    logger.warning(f"Force killing {len(still_alive)} remaining processes for {name}")
    for process in still_alive:
        try:
            process.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending SIGKILL to PID {process.pid}")

    _, still_alive = psutil.wait_procs(still_alive, timeout=TimeoutConstants.TERMINATION_FORCE_TIMEOUT)
    if still_alive:
        logger.error(f"Failed to terminate {len(still_alive)} processes for {name}")


def run_command_sync(argv: Sequence[str], timeout_seconds: float) -> ExecutionOutcome:
    """
    Run a command to completion, blocking the calling thread.

    Args:
        argv: Program followed by its arguments
        timeout_seconds: Deadline for the whole invocation

    Returns:
        The normalised outcome. On timeout ``returncode`` is None and
        ``timed_out`` is True.

    Raises:
        CommandError: If ``argv`` is empty
        OSError: If the program cannot be spawned
    """
    args = _check_argv(argv)
    logger.debug(f"Running command: {' '.join(args)} (timeout {timeout_seconds}s)")

    process = subprocess.Popen(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    try:
        stdout, stderr = process.communicate(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        logger.warning(f"Command '{args[0]}' exceeded {timeout_seconds}s, terminating PID {process.pid}")
        terminate_process(process.pid, args[0])
        stdout, stderr = process.communicate()
        # Killed on our behalf; the exit status carries no probe information.
        return ExecutionOutcome(
            stdout=stdout or "",
            stderr=stderr or "",
            returncode=None,
            signal=_signal_name(process.returncode),
            timed_out=True,
        )

    return _build_outcome(stdout, stderr, process.returncode)


async def _drain(stream: Optional[asyncio.StreamReader]) -> str:
    """Read a pipe until EOF so the child never blocks on a full buffer."""
    if stream is None:
        return ""
    chunks = []
    while True:
        chunk = await stream.read(TimeoutConstants.READ_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks).decode("utf-8", errors="replace")


async def _wait_for_exit(process: asyncio.subprocess.Process,
                         stdout_task: "asyncio.Task[str]",
                         stderr_task: "asyncio.Task[str]") -> ExecutionOutcome:
    returncode = await process.wait()
    stdout = await stdout_task
    stderr = await stderr_task
    return _build_outcome(stdout, stderr, returncode)


async def _terminate_async(process: asyncio.subprocess.Process, name: str) -> None:
    """Terminate a child started with ``create_subprocess_exec``."""
    if process.returncode is not None:
        return

    logger.debug(f"Terminating {name} (PID: {process.pid})")
    try:
        process.terminate()
    except ProcessLookupError:
        return

    try:
        await asyncio.wait_for(process.wait(), timeout=TimeoutConstants.TERMINATION_GRACEFUL_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning(f"Force killing {name} (PID: {process.pid})")
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()


async def _finish_pipes(process: asyncio.subprocess.Process,
                        drain_tasks: List["asyncio.Task[str]"]) -> None:
    """
    Let the pipe readers of a terminated child reach EOF.

    A reader cancelled before EOF leaves its pipe transport, and with it the
    subprocess transport, open until garbage collection.
    """
    pending = [task for task in drain_tasks if not task.done()]
    if not pending or process.returncode is None:
        return
    _, still_pending = await asyncio.wait(pending, timeout=TimeoutConstants.PIPE_DRAIN_TIMEOUT)
    if still_pending:
        logger.debug(f"Pipes of PID {process.pid} still open after "
                     f"{TimeoutConstants.PIPE_DRAIN_TIMEOUT}s, abandoning readers")
        return
    await process.wait()


async def _release_tasks(tasks: List["asyncio.Task"]) -> None:
    for task in tasks:
        if not task.done():
            task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            handle_error(
                error=e,
                context="releasing process helper task",
                severity=ErrorSeverity.DEBUG,
                reraise=False,
                logger=logger
            )


async def run_command_async(argv: Sequence[str], timeout_seconds: float,
                            cancel_token: Optional[CancellationToken] = None) -> ExecutionOutcome:
    """
    Run a command on the event loop with timeout and cancellation.

    Args:
        argv: Program followed by its arguments
        timeout_seconds: Deadline for the whole invocation
        cancel_token: Optional token; cancelling it terminates the process

    Returns:
        The normalised outcome of a process that exited on its own

    Raises:
        CommandError: If ``argv`` is empty
        ProbeAbortedError: If the token is cancelled before or during execution
        ProbeTimeoutError: If the process overran ``timeout_seconds``
        OSError: If the program cannot be spawned
    """
    args = _check_argv(argv)

    if cancel_token is not None and cancel_token.is_cancelled:
        raise ProbeAbortedError()

    loop = asyncio.get_running_loop()
    cancel_event = asyncio.Event()

    def _on_cancel() -> None:
        # May run on another thread.
        try:
            loop.call_soon_threadsafe(cancel_event.set)
        except RuntimeError:
            logger.debug("Cancellation arrived after the event loop closed")

    logger.debug(f"Spawning command: {' '.join(args)} (timeout {timeout_seconds}s)")
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    if cancel_token is not None:
        cancel_token.add_callback(_on_cancel)

    stdout_task = asyncio.create_task(_drain(process.stdout))
    stderr_task = asyncio.create_task(_drain(process.stderr))
    wait_task = asyncio.create_task(_wait_for_exit(process, stdout_task, stderr_task))
    cancel_task = asyncio.create_task(cancel_event.wait())
    helper_tasks = [wait_task, cancel_task, stdout_task, stderr_task]

    try:
        done, _ = await asyncio.wait(
            [wait_task, cancel_task],
            timeout=timeout_seconds,
            return_when=asyncio.FIRST_COMPLETED
        )

        if wait_task in done:
            return wait_task.result()

        await _terminate_async(process, args[0])
        if cancel_task in done:
            logger.debug(f"Command '{args[0]}' aborted by cancellation token")
            raise ProbeAbortedError()

        logger.warning(f"Command '{args[0]}' timed out after {timeout_seconds}s")
        raise ProbeTimeoutError(timeout_seconds)

    except asyncio.CancelledError:
        await _terminate_async(process, args[0])
        raise
    finally:
        if cancel_token is not None:
            cancel_token.remove_callback(_on_cancel)
        await _finish_pipes(process, [stdout_task, stderr_task])
        await _release_tasks(helper_tasks)
