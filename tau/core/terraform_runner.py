"""
External command execution with line-oriented output routing.

This module runs Terraform subcommands (and hook commands) with a
configurable working directory and environment. Every line a process
writes is passed to the callbacks registered for that stream; a non-zero
exit raises ProcessFailure.
"""

import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from ..errors import ProcessFailure
from ..security.redactor import OutputRedactor
from ..security.sanitizer import InputSanitizer, SecurityError
from ..utils import subprocess_creation_flags

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]


@dataclass
class CommandResult:
    """Result of a command execution."""
    exit_code: int
    stdout: str
    stderr: str
    command: str  # operation name (e.g. "init", "output")


class OutputBuffer:
    """Collects output lines so they can be parsed once the process exits."""

    def __init__(self):
        self._lines: List[str] = []

    def __call__(self, line: str):
        self._lines.append(line)

    def text(self) -> str:
        return "\n".join(self._lines)


class ProcessRunner:
    """
    Runs external commands.

    - shell=False always (no shell interpretation)
    - All command args validated via is_safe_command_arg()
    - Output shown in logs passes through the redactor
    """

    def __init__(self, redactor: Optional[OutputRedactor] = None):
        self.redactor = redactor or OutputRedactor()

    def log_lines(self, level: int) -> OutputCallback:
        """Return a callback that logs each line at the given level, redacted."""
        def _log(line: str):
            if line.strip():
                logger.log(level, self.redactor.redact(line))
        return _log

    def run(
        self,
        cmd: List[str],
        operation: str,
        working_dir: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        stdout: Sequence[OutputCallback] = (),
        stderr: Sequence[OutputCallback] = (),
    ) -> CommandResult:
        """
        Execute a command, streaming output line by line to the callbacks.

        Args:
            cmd: Executable and arguments
            operation: Name used in logs and errors
            working_dir: Directory to run in (current directory if None)
            env: Extra environment variables added to os.environ
            stdout: Callbacks receiving each stdout line
            stderr: Callbacks receiving each stderr line

        Returns:
            CommandResult of a successful run

        Raises:
            ProcessFailure: If the process cannot start or exits non-zero
            SecurityError: If an argument is unsafe
        """
        for arg in cmd:
            if not InputSanitizer.is_safe_command_arg(arg):
                raise SecurityError(f"Unsafe command argument: {arg[:80]}")

        process_env = dict(os.environ)
        if env:
            process_env.update(env)

        logger.debug(f"command: {self.redactor.redact(' '.join(cmd))}")
        if env:
            logger.debug(f"extra environment variables: {sorted(env)}")

        stdout_lines: List[str] = []
        stderr_lines: List[str] = []

        try:
            process = subprocess.Popen(
                cmd,
                cwd=working_dir,
                env=process_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                shell=False,
                creationflags=subprocess_creation_flags(),
            )
        except OSError as e:
            raise ProcessFailure(f"{operation}: unable to start {cmd[0]}: {e}") from e

        def _read_stderr():
            assert process.stderr is not None
            for line in process.stderr:
                line = line.rstrip("\n")
                stderr_lines.append(self.redactor.redact(line))
                for callback in stderr:
                    callback(line)

        stderr_thread = threading.Thread(target=_read_stderr, daemon=True)
        stderr_thread.start()

        assert process.stdout is not None
        for line in process.stdout:
            line = line.rstrip("\n")
            stdout_lines.append(line)
            for callback in stdout:
                callback(line)

        stderr_thread.join()
        exit_code = process.wait()

        if exit_code != 0:
            raise ProcessFailure(
                f"{operation} command exited with exit code {exit_code}",
                exit_code=exit_code,
            )

        return CommandResult(
            exit_code=exit_code,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
            command=operation,
        )


class TerraformExecutor(ProcessRunner):
    """
    Executes Terraform subcommands.

    Commands run inside the working directory instead of using -chdir,
    which Terraform 0.12 does not support. -input=false prevents stdin
    prompts.
    """

    DEFAULT_ARGS = {
        "init": ["-input=false", "-no-color"],
        "apply": ["-input=false", "-no-color", "-auto-approve"],
        "output": ["-no-color"],
    }

    def __init__(
        self,
        terraform_binary: str = "terraform",
        redactor: Optional[OutputRedactor] = None,
    ):
        super().__init__(redactor)
        self.terraform_binary = terraform_binary

    def build_command(self, command: str, *args: str) -> List[str]:
        """Construct [binary, command, default args..., extra args...]."""
        cmd = [self.terraform_binary, command]
        cmd.extend(self.DEFAULT_ARGS.get(command, []))
        cmd.extend(args)
        return cmd

    def execute(
        self,
        command: str,
        *args: str,
        working_dir: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        stdout: Sequence[OutputCallback] = (),
        stderr: Sequence[OutputCallback] = (),
    ) -> CommandResult:
        """Run `terraform <command> <args>` in working_dir."""
        return self.run(
            self.build_command(command, *args),
            command,
            working_dir=working_dir,
            env=env,
            stdout=stdout,
            stderr=stderr,
        )
