"""
State propagation engine.

Resolves a module's direct dependencies into their current output
values by running a small Terraform configuration per dependency (init,
apply, output -json), builds a ValueTree from the collected outputs and
writes the module's variable file from it.
"""

import logging
import os
from typing import Any, Dict, Optional

from ..config.model import Config
from ..config.settings import Settings
from ..errors import ValidationFailure
from ..security.sanitizer import InputSanitizer
from ..utils.validators import validate_terraform_installed
from .generator import DependencyWorkUnit, Generator, V012Generator
from .hooks import CommandHooks, Hooks, NoHooks
from .module import Module
from .output_processor import parse_output
from .terraform_runner import OutputBuffer, TerraformExecutor
from .value_tree import ValueTree

logger = logging.getLogger(__name__)

# (minimum version, generator class), newest first
GENERATORS = [
    ((0, 12), V012Generator),
]


def select_generator(version: str) -> Generator:
    """
    Pick the generator for a Terraform version.

    Raises:
        ValidationFailure: If the version is unsupported or unparsable
    """
    try:
        major, minor = (int(part) for part in version.split(".")[:2])
    except ValueError as e:
        raise ValidationFailure(f"Could not parse terraform version '{version}'") from e

    for minimum, generator_class in GENERATORS:
        if (major, minor) >= minimum:
            return generator_class()

    raise ValidationFailure(f"Unsupported terraform version {version}")


class Engine:
    """
    Terraform engine for one installed Terraform version.

    The generator and executor are chosen once and kept for the lifetime
    of the engine.
    """

    def __init__(
        self,
        generator: Generator,
        executor: TerraformExecutor,
        hooks: Optional[Hooks] = None,
        settings: Optional[Settings] = None,
        version: str = "",
    ):
        self.generator = generator
        self.executor = executor
        self.hooks = hooks or NoHooks()
        self.settings = settings or Settings()
        self.version = version

    @classmethod
    def for_installed_terraform(cls, settings: Optional[Settings] = None) -> "Engine":
        """
        Create an engine for the Terraform binary configured in settings.

        Raises:
            ValidationFailure: If Terraform is missing or its version is unsupported
        """
        settings = settings or Settings()
        binary = settings.terraform_binary

        installed, version = validate_terraform_installed(binary)
        if not installed or not version:
            raise ValidationFailure(
                "Could not identify terraform version. Make sure terraform is in PATH."
            )

        logger.debug(f"Terraform version: {version}")

        executor = TerraformExecutor(terraform_binary=binary)
        return cls(
            generator=select_generator(version),
            executor=executor,
            hooks=CommandHooks(executor),
            settings=settings,
            version=version,
        )

    def variable_file(self, dest: str) -> str:
        return os.path.join(dest, self.settings.get("variable_file", "terraform.tfvars"))

    def has_input_variables(self, dest: str) -> bool:
        return os.path.isfile(self.variable_file(dest))

    def clear_input_variables(self, dest: str):
        """Remove the variable file so the next run resolves dependencies again."""
        path = self.variable_file(dest)
        if os.path.isfile(path):
            os.remove(path)
            logger.debug(f"Removed {path}")

    def create_overrides(self, config: Config, dest: str):
        """Write the backend override file into dest when the module has a backend."""
        logger.debug("Creating overrides...")

        content, create = self.generator.generate_overrides(config)
        if not create:
            return

        path = os.path.join(dest, self.settings.get("override_file", "tau_override.tf"))
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

    def propagate(
        self,
        module: Module,
        module_dir: Optional[str] = None,
        dependency_dir: Optional[str] = None,
    ) -> Optional[ValueTree]:
        """
        Resolve dependencies and write the variable file, unless it already exists.

        An existing variable file is reused as is; outputs that changed
        since it was written are not noticed until the caller removes it.

        Args:
            module: Resolved module
            module_dir: Where the variable file goes (module working dir if None)
            dependency_dir: Where dependency configurations are generated

        Returns:
            The aggregate tree, or None if resolution was skipped or the
            module has no dependencies
        """
        module_dir = module_dir or module.working_dir
        dependency_dir = dependency_dir or os.path.join(
            module_dir, self.settings.get("dependency_dir", ".tau/dependencies")
        )

        if self.has_input_variables(module_dir):
            logger.info(
                f"{module.name}: reusing existing {os.path.basename(self.variable_file(module_dir))}"
            )
            return None

        env = self.hooks.run(module.config, "prepare", "resolve", module.working_dir)
        tree = self.resolve_dependencies(module, dependency_dir, env)
        self.write_input_variables(module, module_dir, tree)
        self.hooks.run(module.config, "finish", "resolve", module.working_dir)

        return tree

    def resolve_dependencies(
        self,
        module: Module,
        dest: str,
        env: Optional[Dict[str, str]] = None,
    ) -> Optional[ValueTree]:
        """
        Read the current outputs of every direct dependency.

        Dependencies run one at a time in declared order; the first
        failure aborts the whole resolution.

        Args:
            module: Resolved module
            dest: Directory receiving one subdirectory per dependency
            env: Extra environment for every Terraform run

        Returns:
            Tree with one subtree per dependency name, or None if the
            module declares no dependencies
        """
        units = self.generator.generate_dependencies(module)
        if not units:
            return None

        values: Dict[str, Any] = {}
        for unit in units:
            outputs = self._process(unit, dest, env or {})
            for output_name, value in outputs.items():
                values[f"{unit.name}.{output_name}"] = value

        return ValueTree.from_flat(values)

    def _process(self, unit: DependencyWorkUnit, dest: str, env: Dict[str, str]) -> Dict[str, Any]:
        unit_dir = os.path.join(dest, InputSanitizer.sanitize_dependency_name(unit.name))
        os.makedirs(unit_dir, exist_ok=True)

        with open(os.path.join(unit_dir, self.settings.get("dependency_file", "main.tf")), "w",
                  encoding="utf-8") as f:
            f.write(unit.content)

        run_env = dict(env)
        run_env.update(unit.config.env)
        run_env.update(self.hooks.run(unit.config, "prepare", "init", unit.working_dir))

        debug_log = self.executor.log_lines(logging.DEBUG)
        error_log = self.executor.log_lines(logging.ERROR)

        logger.info(f"- Running terraform init on {unit.name}")
        self.executor.execute(
            "init", working_dir=unit_dir, env=run_env, stdout=[debug_log], stderr=[error_log],
        )

        logger.info(f"- Running terraform apply on {unit.name}")
        self.executor.execute(
            "apply", working_dir=unit_dir, env=run_env, stdout=[debug_log], stderr=[error_log],
        )

        buffer = OutputBuffer()
        logger.info(f"- Reading output from {unit.name}")
        self.executor.execute(
            "output", "-json", working_dir=unit_dir, env=run_env, stdout=[buffer], stderr=[error_log],
        )

        outputs = parse_output(buffer.text())
        self.executor.redactor.add_sensitive_values(
            output.value for output in outputs.values() if output.sensitive
        )
        return self.generator.resolved_outputs(unit, outputs)

    def write_input_variables(self, module: Module, dest: str, tree: Optional[ValueTree]):
        """
        Write the variable file into dest.

        The module's inputs are rendered with dependency references
        replaced by values from tree.
        """
        content = self.generator.generate_variables(module.config, tree or ValueTree.empty())

        path = self.variable_file(dest)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

        logger.debug(f"Wrote {path}")
