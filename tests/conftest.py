"""Shared fixtures: definition files on disk and a recording executor."""

import json
import os
import textwrap

import pytest

from tau.config import Settings
from tau.core.terraform_runner import CommandResult, TerraformExecutor
from tau.errors import ProcessFailure


def write_definition(directory, name, content):
    """Write a dedented definition file and return its path as a string."""
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip())
    return str(path)


class RecordingExecutor(TerraformExecutor):
    """
    Executor that never starts a process.

    Records (working directory name, operation) for every call. For
    "output" it emits the JSON Terraform would print for the generated
    dependency configuration; hook operations print their hook_output lines.
    """

    def __init__(self, outputs=None, fail_on=None, hook_output=None):
        super().__init__(terraform_binary="terraform")
        self.outputs = outputs or {}
        self.hook_output = hook_output or {}
        self.fail_on = fail_on
        self.calls = []
        self.commands = []
        self.envs = []

    def run(self, cmd, operation, working_dir=None, env=None, stdout=(), stderr=()):
        name = os.path.basename(working_dir) if working_dir else ""
        self.calls.append((name, operation))
        self.commands.append(cmd)
        self.envs.append(dict(env or {}))

        if self.fail_on == (name, operation):
            for callback in stderr:
                callback("Error: backend initialization failed")
            raise ProcessFailure(f"{operation} command exited with exit code 1", exit_code=1)

        if operation == "output":
            document = {
                name: {
                    "sensitive": True,
                    "type": "object",
                    "value": self.outputs.get(name, {}),
                }
            }
            for line in json.dumps(document, indent=2).splitlines():
                for callback in stdout:
                    callback(line)
        else:
            for line in self.hook_output.get(operation, [f"{operation} complete"]):
                for callback in stdout:
                    callback(line)

        return CommandResult(0, "", "", operation)


@pytest.fixture
def settings(tmp_path):
    """Default settings that never touch the user's config directory."""
    return Settings(config_dir=tmp_path / "config")
