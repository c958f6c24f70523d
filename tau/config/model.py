"""
Configuration model for tau definition files.

A definition file declares the module to deploy, its backend, inputs,
environment, hooks and the dependencies whose deployed state it reads.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import MergeConflict, ValidationFailure

logger = logging.getLogger(__name__)


@dataclass
class Backend:
    """
    Remote state backend.

    Attributes:
        type: Backend type label (e.g. "azurerm", "s3", "local")
        config: Backend attributes; values may be nested mappings
    """
    type: str = ""
    config: Dict[str, Any] = field(default_factory=dict)

    def merge(self, src: Optional["Backend"]) -> None:
        """
        Merge an override backend into this one.

        Non-empty override values replace existing ones, nested mappings
        are merged key by key.

        Raises:
            MergeConflict: If backend types differ or a mapping would
                replace a scalar (or the reverse)
        """
        if src is None:
            return

        if src.type:
            if self.type and self.type != src.type:
                raise MergeConflict(
                    f"Cannot merge backend '{src.type}' into backend '{self.type}'"
                )
            self.type = src.type

        _merge_fields(self.config, src.config, path=self.type or "backend")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _merge_fields(target: Dict[str, Any], override: Dict[str, Any], path: str) -> None:
    for key, value in override.items():
        if _is_empty(value):
            continue

        current = target.get(key)
        field_path = f"{path}.{key}"

        if isinstance(value, dict):
            if _is_empty(current):
                target[key] = copy.deepcopy(value)
            elif isinstance(current, dict):
                _merge_fields(current, value, field_path)
            else:
                raise MergeConflict(f"Cannot merge a block into attribute '{field_path}'")
        elif isinstance(current, dict):
            raise MergeConflict(f"Cannot merge an attribute into block '{field_path}'")
        else:
            target[key] = copy.deepcopy(value)


@dataclass
class Dependency:
    """
    Reference to another deployment whose outputs this module reads.

    For each dependency a remote state lookup is generated. Backend
    settings come from the dependency's own definition; the backend
    declared here only overrides individual attributes (for instance a
    different access token).
    """
    name: str
    source: str = ""
    backend: Optional[Backend] = None

    def merge(self, src: Optional["Dependency"]) -> None:
        """Merge src into this dependency. Dependencies with different names are left untouched."""
        if src is None:
            return

        if self.name != src.name:
            return

        if src.source != "":
            self.source = src.source

        if self.backend is None and src.backend is not None:
            self.backend = copy.deepcopy(src.backend)
            return

        if self.backend is not None:
            self.backend.merge(src.backend)

    def validate(self) -> bool:
        """
        Check that name and source are set.

        Raises:
            ValidationFailure: If a required field is empty
        """
        if not self.name:
            raise ValidationFailure("dependency name must be set")
        if not self.source:
            raise ValidationFailure(f"dependency '{self.name}': source must be set")
        return True


@dataclass
class Hook:
    """
    Command run at a lifecycle point.

    Attributes:
        name: Hook label
        trigger_on: "<event>:<command>", e.g. "prepare:init"
        command: Executable to run
        args: Arguments passed to the command
        set_env: Read KEY=VALUE lines from stdout into the environment
    """
    name: str
    trigger_on: str = ""
    command: str = ""
    args: List[str] = field(default_factory=list)
    set_env: bool = False


@dataclass
class ModuleSource:
    """Terraform module the definition deploys."""
    source: str = ""
    version: str = ""


@dataclass
class Config:
    """Parsed tau definition file."""
    module: Optional[ModuleSource] = None
    dependencies: List[Dependency] = field(default_factory=list)
    backend: Optional[Backend] = None
    inputs: Dict[str, Any] = field(default_factory=dict)
    env: Dict[str, str] = field(default_factory=dict)
    hooks: List[Hook] = field(default_factory=list)

    def validate(self) -> bool:
        """
        Validate every dependency and check names are unique.

        Raises:
            ValidationFailure: On the first invalid or duplicate dependency
        """
        seen = set()
        for dep in self.dependencies:
            dep.validate()
            if dep.name in seen:
                raise ValidationFailure(f"dependency '{dep.name}' declared more than once")
            seen.add(dep.name)
        return True

    def dependency_names(self) -> List[str]:
        return [dep.name for dep in self.dependencies]
