"""
Core dependency resolution functionality for tau.

This module provides the business logic for propagating Terraform state:
- Loading and de-duplicating the module definition graph
- Running Terraform to read dependency outputs
- Building and rendering value trees
"""

from .value_tree import ValueTree, Leaf, Branch
from .module import Module, ModuleLoader, Level, ResolutionContext, load_module_graph
from .source_locator import SourceLocator
from .terraform_runner import TerraformExecutor, ProcessRunner, CommandResult, OutputBuffer
from .generator import Generator, V012Generator, DependencyWorkUnit
from .hooks import Hooks, CommandHooks, NoHooks
from .engine import Engine, select_generator
from .output_formatter import flatten, format_tree

__all__ = [
    "ValueTree",
    "Leaf",
    "Branch",
    "Module",
    "ModuleLoader",
    "Level",
    "ResolutionContext",
    "load_module_graph",
    "SourceLocator",
    "TerraformExecutor",
    "ProcessRunner",
    "CommandResult",
    "OutputBuffer",
    "Generator",
    "V012Generator",
    "DependencyWorkUnit",
    "Hooks",
    "CommandHooks",
    "NoHooks",
    "Engine",
    "select_generator",
    "flatten",
    "format_tree",
]
