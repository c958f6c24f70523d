"""
Configuration for tau.

This module handles tool settings and the parsed definition file model.
"""

from .settings import Settings
from .defaults import DEFAULT_SETTINGS
from .model import Backend, Config, Dependency, Hook, ModuleSource
from .parser import ConfigParser

__all__ = [
    "Settings",
    "DEFAULT_SETTINGS",
    "Backend",
    "Config",
    "Dependency",
    "Hook",
    "ModuleSource",
    "ConfigParser",
]
