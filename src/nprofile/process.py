"""Shell command execution with pipe deadlock prevention.

Philosophy:
- Single responsibility: run one command string under one shell
- Standard library only
- Never raises for a failed command; the exit code carries the result

Public API:
    DEFAULT_SHELL: Platform shell used when an environment sets none
    CommandResult: Result dataclass
    run_command: Main execution function
"""

import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from pathlib import PureWindowsPath

logger = logging.getLogger(__name__)

if os.name == "nt":
    DEFAULT_SHELL = r"C:\Windows\System32\WindowsPowerShell\v1.0\powershell.exe"
else:
    DEFAULT_SHELL = "/bin/bash"


@dataclass
class CommandResult:
    """Result of a shell command."""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    spawn_error: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out and not self.spawn_error

    @property
    def completed(self) -> bool:
        """True if the command ran to exit, whatever its exit code."""
        return not self.timed_out and not self.spawn_error

    @property
    def output(self) -> str:
        """Captured error output, falling back to standard output."""
        return self.stderr.strip() or self.stdout.strip()


def shell_invocation(command: str, shell: str | None = None) -> list[str]:
    """Build the argv that runs ``command`` under ``shell``.

    PowerShell takes ``-Command`` and cmd.exe takes ``/C``; everything else
    is assumed to be a POSIX shell taking ``-c``.
    """
    shell = shell or DEFAULT_SHELL
    executable = PureWindowsPath(shell).name.lower()
    if executable in ("powershell", "powershell.exe", "pwsh", "pwsh.exe"):
        flag = "-Command"
    elif executable in ("cmd", "cmd.exe"):
        flag = "/C"
    else:
        flag = "-c"
    return [shell, flag, command]


def run_command(
    command: str,
    shell: str | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """
    Run a command string under a shell and capture its output.

    Uses background threads to drain stdout/stderr pipes,
    preventing buffer overflow that causes deadlocks.

    Args:
        command: Command string passed to the shell
        shell: Shell executable (default: DEFAULT_SHELL)
        timeout: Timeout in seconds (None = wait forever)

    Returns:
        CommandResult with output and exit code

    Example:
        >>> result = run_command("echo hello", shell="/bin/sh")
        >>> assert result.returncode == 0
        >>> assert "hello" in result.stdout
    """
    argv = shell_invocation(command, shell)

    try:
        process = subprocess.Popen(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError:
        # Shell not found - standard exit code 127
        return CommandResult(
            returncode=127,
            stdout="",
            stderr=f"Shell not found: {argv[0]}",
            spawn_error=True,
        )
    except OSError as e:
        return CommandResult(
            returncode=1,
            stdout="",
            stderr=f"Error executing command: {e!s}",
            spawn_error=True,
        )

    stdout_data: list[bytes] = []
    stderr_data: list[bytes] = []

    def drain_pipe(pipe, storage):
        """Read from pipe until EOF, store in list."""
        try:
            data = pipe.read()
            if data:
                storage.append(data)
        except OSError:
            # Pipe closed - normal during process termination
            pass

    stdout_thread = threading.Thread(target=drain_pipe, args=(process.stdout, stdout_data))
    stderr_thread = threading.Thread(target=drain_pipe, args=(process.stderr, stderr_data))

    stdout_thread.daemon = True
    stderr_thread.daemon = True

    stdout_thread.start()
    stderr_thread.start()

    timed_out = False
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        logger.warning(f"Command timed out after {timeout}s, terminating shell")
        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    stdout_thread.join(timeout=1)
    stderr_thread.join(timeout=1)

    returncode = -1 if timed_out or process.returncode is None else process.returncode

    stdout = stdout_data[0].decode("utf-8", errors="replace") if stdout_data else ""
    stderr = stderr_data[0].decode("utf-8", errors="replace") if stderr_data else ""

    return CommandResult(
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
        timed_out=timed_out,
    )


__all__ = ["DEFAULT_SHELL", "CommandResult", "run_command", "shell_invocation"]
