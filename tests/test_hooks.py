"""Tests for lifecycle hooks."""

import pytest

from tau.config.model import Config, Hook
from tau.core.hooks import CommandHooks, NoHooks, parse_env_lines
from tau.core.terraform_runner import CommandResult, ProcessRunner
from tau.errors import ProcessFailure, ValidationFailure
from tau.security.sanitizer import SecurityError


class FakeRunner(ProcessRunner):
    """Runner that records commands and prints canned stdout per command."""

    def __init__(self, stdout=None, fail=()):
        super().__init__()
        self.stdout = stdout or {}
        self.fail = fail
        self.runs = []

    def run(self, cmd, operation, working_dir=None, env=None, stdout=(), stderr=()):
        self.runs.append((cmd, working_dir, dict(env or {})))
        if cmd[0] in self.fail:
            raise ProcessFailure(f"{operation} command exited with exit code 2", exit_code=2)
        for line in self.stdout.get(cmd[0], []):
            for callback in stdout:
                callback(line)
        return CommandResult(0, "", "", operation)


def _config(*hooks, env=None):
    return Config(hooks=list(hooks), env=env or {})


class TestCommandHooks:
    def test_runs_matching_trigger_only(self):
        runner = FakeRunner()
        config = _config(
            Hook("login", trigger_on="prepare:init", command="az", args=["login"]),
            Hook("cleanup", trigger_on="finish:resolve", command="rm"),
        )

        CommandHooks(runner).run(config, "prepare", "init", "/work")

        assert runner.runs == [(["az", "login"], "/work", {})]

    def test_no_matching_hooks(self):
        runner = FakeRunner()
        assert CommandHooks(runner).run(_config(), "prepare", "init") == {}
        assert runner.runs == []

    def test_set_env_exports_values(self):
        runner = FakeRunner(stdout={"creds": ["ARM_ACCESS_KEY=s3cr3t", "ignored line"]})
        config = _config(Hook("creds", trigger_on="prepare:init", command="creds", set_env=True))

        exported = CommandHooks(runner).run(config, "prepare", "init")

        assert exported == {"ARM_ACCESS_KEY": "s3cr3t"}

    def test_exported_values_are_redacted(self):
        runner = FakeRunner(stdout={"creds": ["TOKEN=s3cr3t"]})
        config = _config(Hook("creds", trigger_on="prepare:init", command="creds", set_env=True))

        CommandHooks(runner).run(config, "prepare", "init")

        assert runner.redactor.redact("using s3cr3t") == "using [REDACTED]"

    def test_later_hooks_see_exported_env(self):
        runner = FakeRunner(stdout={"first": ["A=1"]})
        config = _config(
            Hook("first", trigger_on="prepare:init", command="first", set_env=True),
            Hook("second", trigger_on="prepare:init", command="second"),
            env={"BASE": "x"},
        )

        CommandHooks(runner).run(config, "prepare", "init")

        assert runner.runs[1][2] == {"BASE": "x", "A": "1"}

    def test_without_set_env_output_not_exported(self):
        runner = FakeRunner(stdout={"echo": ["A=1"]})
        config = _config(Hook("echo", trigger_on="prepare:init", command="echo"))

        assert CommandHooks(runner).run(config, "prepare", "init") == {}

    def test_failure_propagates(self):
        runner = FakeRunner(fail=("bad",))
        config = _config(
            Hook("bad", trigger_on="prepare:init", command="bad"),
            Hook("after", trigger_on="prepare:init", command="after"),
        )

        with pytest.raises(ProcessFailure):
            CommandHooks(runner).run(config, "prepare", "init")
        assert len(runner.runs) == 1

    def test_missing_command(self):
        config = _config(Hook("empty", trigger_on="prepare:init"))
        with pytest.raises(ValidationFailure):
            CommandHooks(FakeRunner()).run(config, "prepare", "init")


def test_no_hooks_never_runs():
    config = _config(Hook("login", trigger_on="prepare:init", command="az"))
    assert NoHooks().run(config, "prepare", "init") == {}


class TestParseEnvLines:
    def test_plain_and_quoted(self):
        text = 'A=1\nB="two words"\nC=\'x\'\n'
        assert parse_env_lines(text) == {"A": "1", "B": "two words", "C": "x"}

    def test_export_prefix(self):
        assert parse_env_lines("export TOKEN=abc") == {"TOKEN": "abc"}

    def test_value_may_contain_equals(self):
        assert parse_env_lines("CONN=a=b;c=d") == {"CONN": "a=b;c=d"}

    def test_skips_noise(self):
        assert parse_env_lines("\nLogged in\n\nX=1\n") == {"X": "1"}

    def test_invalid_name(self):
        with pytest.raises(SecurityError):
            parse_env_lines("BAD-NAME=1")
