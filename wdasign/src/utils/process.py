import subprocess
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from wdasign.src.errors import StageTimeoutError


def decode_clean(output: Optional[Union[str, bytes]]) -> str:
    """Clean up command output"""
    if not output:
        return ""
    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")
    return output.strip()


def tail(output: Optional[Union[str, bytes]], lines: int = 20) -> str:
    """Last few lines of command output, enough to explain a failure"""
    return "\n".join(decode_clean(output).splitlines()[-lines:])


def run_process(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = None,
    stage: str = "command",
) -> subprocess.CompletedProcess:
    """Run a process to completion and capture its output.

    The child is killed when ``timeout`` expires and StageTimeoutError is
    raised. A non-zero exit status is left for the caller to interpret.
    """
    try:
        return subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise StageTimeoutError(stage, timeout)


def stream_process(
    cmd: Sequence[str],
    on_stdout: Callable[[str], None],
    on_stderr: Callable[[str], None],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = None,
    stage: str = "command",
) -> int:
    """Run a process and hand every output line to a callback as it arrives.

    Returns the exit status. Raises StageTimeoutError after killing the child
    when ``timeout`` expires.
    """
    process = subprocess.Popen(
        list(cmd),
        cwd=str(cwd) if cwd else None,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        encoding="utf-8",
        errors="replace",
        bufsize=1,
    )

    timed_out = threading.Event()

    def kill_on_timeout():
        timed_out.set()
        process.kill()

    timer = threading.Timer(timeout, kill_on_timeout) if timeout else None

    def pump(stream, callback):
        for line in stream:
            line = line.rstrip("\n")
            if line:
                callback(line)

    stderr_errors = []

    def pump_stderr():
        try:
            pump(process.stderr, on_stderr)
        except Exception as e:
            stderr_errors.append(e)
            # Keep draining so the child never blocks on a full pipe
            for _ in process.stderr:
                pass

    stderr_reader = threading.Thread(target=pump_stderr, daemon=True)
    if timer:
        timer.start()
    stderr_reader.start()
    try:
        pump(process.stdout, on_stdout)
        returncode = process.wait()
        stderr_reader.join()
    except BaseException:
        process.kill()
        process.wait()
        raise
    finally:
        if timer:
            timer.cancel()
        process.stdout.close()
        process.stderr.close()

    if timed_out.is_set():
        raise StageTimeoutError(stage, timeout)
    if stderr_errors:
        raise stderr_errors[0]
    return returncode


def command_line(cmd: List[str]) -> str:
    return " ".join(cmd)
