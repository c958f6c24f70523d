"""
Lifecycle hooks.

Hooks are commands declared in a definition file that run at named
points, "<event>:<command>" (for instance "prepare:init" before
Terraform init). A failing hook aborts the operation.
"""

import abc
import logging
from typing import Dict, Optional

from ..config.model import Config
from ..errors import ValidationFailure
from ..security.sanitizer import InputSanitizer
from .terraform_runner import OutputBuffer, ProcessRunner

logger = logging.getLogger(__name__)


class Hooks(abc.ABC):
    """Runs the hooks of a configuration for an event and command."""

    @abc.abstractmethod
    def run(
        self,
        config: Config,
        event: str,
        command: str,
        working_dir: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Run matching hooks.

        Returns:
            Environment variables exported by the hooks
        """


class NoHooks(Hooks):
    """Hooks implementation that never runs anything."""

    def run(self, config, event, command, working_dir=None):
        return {}


class CommandHooks(Hooks):
    """
    Run hooks as external commands.

    A hook with set_env enabled has each KEY=VALUE line of its stdout
    exported to later Terraform runs. Exported values are registered with
    the runner's redactor since they are usually credentials.
    """

    def __init__(self, runner: ProcessRunner):
        self.runner = runner

    def run(self, config, event, command, working_dir=None):
        trigger = f"{event}:{command}"
        exported: Dict[str, str] = {}

        for hook in config.hooks:
            if hook.trigger_on != trigger:
                continue

            if not hook.command:
                raise ValidationFailure(f"hook '{hook.name}': command must be set")

            logger.info(f"- Running hook {hook.name} ({trigger})")

            buffer = OutputBuffer()
            stdout = [buffer] if hook.set_env else [self.runner.log_lines(logging.DEBUG)]
            env = dict(config.env)
            env.update(exported)

            self.runner.run(
                [hook.command] + list(hook.args),
                f"hook {hook.name}",
                working_dir=working_dir,
                env=env,
                stdout=stdout,
                stderr=[self.runner.log_lines(logging.ERROR)],
            )

            if hook.set_env:
                values = parse_env_lines(buffer.text())
                self.runner.redactor.add_sensitive_values(values.values())
                exported.update(values)
                logger.debug(f"hook {hook.name} exported {sorted(values)}")

        return exported


def parse_env_lines(text: str) -> Dict[str, str]:
    """
    Parse KEY=VALUE lines; blank lines and lines without "=" are skipped.

    Raises:
        SecurityError: If a key is not a valid environment variable name
    """
    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        InputSanitizer.sanitize_env_name(key)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
        values[key] = value
    return values
