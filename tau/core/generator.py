"""
Terraform configuration generation.

A Generator knows the native syntax of one family of Terraform versions.
It renders backend overrides, the throwaway configurations that read a
dependency's remote state, and the variable file holding resolved inputs.
"""

import abc
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config.model import Backend, Config
from ..errors import NotFound, ParseFailure, ShapeConflict, ValidationFailure
from ..security.sanitizer import InputSanitizer
from .output_formatter import stringify_value
from .output_processor import OutputValue
from .value_tree import ValueTree

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_-]*$')

# Whole-string reference, e.g. "${dependency.net.vnet_id}"
_FULL_REFERENCE_RE = re.compile(r'^\$\{\s*dependency\.([\w.-]+)\s*\}$')
# Reference embedded in a longer string
_EMBEDDED_REFERENCE_RE = re.compile(r'\$\{\s*dependency\.([\w.-]+)\s*\}')


@dataclass
class DependencyWorkUnit:
    """
    Generated configuration for reading one dependency's remote state.

    Attributes:
        name: Dependency name; also the subdirectory the unit runs in
        content: Terraform configuration to write as main.tf
        config: The dependency's own configuration (env and hooks)
        working_dir: The dependency's working directory (for hooks)
    """
    name: str
    content: str
    config: Config = field(default_factory=Config)
    working_dir: Optional[str] = None


def format_hcl_value(value: Any, indent: int = 0) -> str:
    """Format a Python value as an HCL literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    elif value is None:
        return "null"
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, str):
        escaped = (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
            .replace("${", "$${")
            .replace("%{", "%%{")
        )
        return f'"{escaped}"'
    elif isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_hcl_value(item, indent) for item in value) + "]"
    elif isinstance(value, dict):
        if not value:
            return "{}"
        pad = "  " * (indent + 1)
        lines = ["{"]
        for key in sorted(value):
            lines.append(f"{pad}{_format_key(key)} = {format_hcl_value(value[key], indent + 1)}")
        lines.append("  " * indent + "}")
        return "\n".join(lines)
    raise ValidationFailure(f"Cannot render value of type {type(value).__name__}")


def _format_key(key: str) -> str:
    if _IDENTIFIER_RE.match(key):
        return key
    return format_hcl_value(key)


class Generator(abc.ABC):
    """Renders Terraform configuration for one supported version family."""

    @abc.abstractmethod
    def generate_overrides(self, config: Config) -> Tuple[str, bool]:
        """Return (content, should_create) for the backend override file."""

    @abc.abstractmethod
    def generate_dependencies(self, module) -> List[DependencyWorkUnit]:
        """Return one work unit per direct dependency, in declared order."""

    @abc.abstractmethod
    def resolved_outputs(self, unit: DependencyWorkUnit, outputs: Dict[str, OutputValue]) -> Dict[str, Any]:
        """Extract output name -> value for the unit from its parsed output."""

    @abc.abstractmethod
    def generate_variables(self, config: Config, tree: ValueTree) -> str:
        """Render the module's inputs, resolved against tree, as a variable file."""


class V012Generator(Generator):
    """Generator for Terraform 0.12 and later (HCL2 syntax)."""

    def generate_overrides(self, config: Config) -> Tuple[str, bool]:
        if config.backend is None:
            return "", False

        body = self._render_backend_block(config.backend, indent=1)
        return f"terraform {{\n{body}\n}}\n", True

    def _render_backend_block(self, backend: Backend, indent: int) -> str:
        pad = "  " * indent
        InputSanitizer.sanitize_variable_name(backend.type)
        lines = [f'{pad}backend "{backend.type}" {{']
        for key in sorted(backend.config):
            value = format_hcl_value(backend.config[key], indent + 1)
            lines.append(f"{pad}  {_format_key(key)} = {value}")
        lines.append(f"{pad}}}")
        return "\n".join(lines)

    def generate_dependencies(self, module) -> List[DependencyWorkUnit]:
        units = []
        for dependency in module.config.dependencies:
            name = InputSanitizer.sanitize_dependency_name(dependency.name)
            effective = module.effective_dependency(name)

            if effective.backend is None or not effective.backend.type:
                raise ValidationFailure(
                    f"{module.name}: dependency '{name}' has no backend configuration"
                )

            target = module.deps[name]
            units.append(DependencyWorkUnit(
                name=name,
                content=self._render_remote_state(name, effective.backend),
                config=target.config,
                working_dir=target.working_dir,
            ))
        return units

    @staticmethod
    def _render_remote_state(name: str, backend: Backend) -> str:
        InputSanitizer.sanitize_variable_name(backend.type)
        return (
            f'data "terraform_remote_state" "{name}" {{\n'
            f'  backend = "{backend.type}"\n'
            f'\n'
            f'  config = {format_hcl_value(backend.config, 1)}\n'
            f'}}\n'
            f'\n'
            f'output "{name}" {{\n'
            f'  value     = data.terraform_remote_state.{name}.outputs\n'
            f'  sensitive = true\n'
            f'}}\n'
        )

    def resolved_outputs(self, unit: DependencyWorkUnit, outputs: Dict[str, OutputValue]) -> Dict[str, Any]:
        if unit.name not in outputs:
            raise ParseFailure(f"Output of dependency '{unit.name}' is missing")

        values = outputs[unit.name].value
        if values is None:
            return {}
        if not isinstance(values, dict):
            raise ParseFailure(
                f"Output of dependency '{unit.name}' should be an object, "
                f"got {type(values).__name__}"
            )
        return values

    def generate_variables(self, config: Config, tree: ValueTree) -> str:
        lines = []
        for name in sorted(config.inputs):
            InputSanitizer.sanitize_variable_name(name)
            try:
                value = resolve_references(config.inputs[name], tree)
            except NotFound as e:
                raise NotFound(f"input '{name}': {e}") from e
            lines.append(f"{name} = {format_hcl_value(value)}")

        return "\n".join(lines) + ("\n" if lines else "")


def resolve_references(value: Any, tree: ValueTree) -> Any:
    """
    Replace dependency references in an input value with resolved values.

    A string that is exactly one reference becomes the referenced value
    with its type; references inside longer strings are substituted as
    text.

    Raises:
        NotFound: If a referenced dependency output does not exist
    """
    if isinstance(value, str):
        match = _FULL_REFERENCE_RE.match(value)
        if match:
            return _lookup(tree, match.group(1))
        return _EMBEDDED_REFERENCE_RE.sub(
            lambda m: stringify_value(_lookup(tree, m.group(1))), value
        )
    if isinstance(value, list):
        return [resolve_references(item, tree) for item in value]
    if isinstance(value, dict):
        return {key: resolve_references(item, tree) for key, item in value.items()}
    return value


def _lookup(tree: ValueTree, path: str) -> Any:
    try:
        return tree.get(path)
    except ShapeConflict as e:
        raise NotFound(f"Invalid reference 'dependency.{path}'") from e
