"""
Module definition graph.

A Module is one parsed definition file. Its identity is the MD5 hash of
the file content, so byte-identical definitions found at different
locations collapse into one Module. Dependencies are resolved
depth-first right after a module is read, through a ResolutionContext
owned by a single top-level load.
"""

import copy
import enum
import hashlib
import logging
import os
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Set

from ..config.model import Config, Dependency
from ..config.parser import ConfigParser
from ..errors import CycleDetected, NotFound, ReadFailure, ValidationFailure
from .source_locator import SourceLocator

logger = logging.getLogger(__name__)


class Level(enum.Enum):
    """Why a module was loaded."""
    ROOT = 1        # module under direct operation
    DEPENDENCY = 2  # reached through a dependency


class Module:
    """
    A parsed definition participating in the dependency graph.

    The dependency map is filled once by ModuleLoader.resolve_dependencies
    and is read-only afterwards.
    """

    def __init__(
        self,
        location: str,
        working_dir: str,
        level: Level,
        content: bytes,
        config: Config,
    ):
        self.location = location
        self.working_dir = working_dir
        self.level = level
        self.config = config
        self._content = content
        self._hash = hashlib.md5(content).hexdigest()
        self._deps: Optional[Mapping[str, "Module"]] = None
        self._effective: Mapping[str, Dependency] = MappingProxyType({})

    @property
    def name(self) -> str:
        return os.path.basename(self.location)

    @property
    def content(self) -> bytes:
        return self._content

    @property
    def content_hash(self) -> str:
        return self._hash

    @property
    def deps(self) -> Mapping[str, "Module"]:
        """Dependency name -> Module; empty until resolved."""
        return self._deps if self._deps is not None else MappingProxyType({})

    @property
    def is_resolved(self) -> bool:
        return self._deps is not None

    def effective_dependency(self, name: str) -> Dependency:
        """
        The dependency as used for remote state: the target's own backend
        with this module's override merged on top.

        Raises:
            NotFound: If no dependency with that name was resolved
        """
        if name not in self._effective:
            raise NotFound(f"{self.name}: no resolved dependency named '{name}'")
        return self._effective[name]

    def _set_dependencies(self, deps: Dict[str, "Module"], effective: Dict[str, Dependency]):
        if self._deps is not None:
            raise RuntimeError(f"Dependencies of {self.location} are already resolved")
        self._deps = MappingProxyType(dict(deps))
        self._effective = MappingProxyType(dict(effective))

    def __repr__(self) -> str:
        return (
            f"Module(location='{self.location}', level={self.level.name}, "
            f"hash='{self._hash[:8]}', deps={sorted(self.deps)})"
        )


class ResolutionContext:
    """
    State shared across one recursive resolution.

    Holds the content-hash cache and the set of hashes whose
    dependencies are still being resolved.
    """

    def __init__(self):
        self.cache: Dict[str, Module] = {}
        self._in_progress: Set[str] = set()
        self._stack: List[str] = []

    def get(self, content_hash: str) -> Optional[Module]:
        return self.cache.get(content_hash)

    def add(self, module: Module) -> Module:
        """Insert module unless its content is already known; return the cached one."""
        return self.cache.setdefault(module.content_hash, module)

    def is_in_progress(self, content_hash: str) -> bool:
        return content_hash in self._in_progress

    def begin(self, module: Module):
        self._in_progress.add(module.content_hash)
        self._stack.append(module.location)

    def finish(self, module: Module):
        self._in_progress.discard(module.content_hash)
        self._stack.pop()

    def chain(self, location: str) -> str:
        return " -> ".join(self._stack + [location])


class ModuleLoader:
    """
    Load definition files and resolve their dependency graphs.
    """

    def __init__(
        self,
        parser: Optional[ConfigParser] = None,
        locator: Optional[SourceLocator] = None,
    ):
        self.parser = parser or ConfigParser()
        self.locator = locator or SourceLocator()

    def read(self, path: str, working_dir: str, level: Level) -> Module:
        """
        Read and parse a single definition file.

        Raises:
            NotFound: If the file does not exist
            ReadFailure: If the file cannot be read
            ParseFailure: If the content is not a valid definition
        """
        if not os.path.isfile(path):
            raise NotFound(f"Definition file does not exist: {path}")

        try:
            with open(path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise ReadFailure(f"Unable to read {path}: {e}") from e

        config = self.parser.parse(content, path)
        logger.info(f"{os.path.basename(path)} loaded")

        return Module(
            location=path,
            working_dir=working_dir,
            level=level,
            content=content,
            config=config,
        )

    def load(self, location: str, working_dir: str, level: Level = Level.ROOT) -> List[Module]:
        """
        Load every definition a location yields, without resolving dependencies.

        Args:
            location: File or directory, relative to working_dir
            working_dir: Base directory
            level: Level tag for the returned modules

        Returns:
            One Module per definition file, in name order
        """
        paths = self.locator.locate(location, working_dir)
        return [self.read(path, os.path.dirname(path), level) for path in paths]

    def resolve_dependencies(self, module: Module, context: ResolutionContext):
        """
        Resolve the module's dependencies depth-first.

        Each dependency source is located relative to the module's working
        directory. A candidate whose content hash is already cached is
        reused; otherwise it is cached and resolved before moving on.

        Raises:
            CycleDetected: If a candidate is still being resolved further up
            NotFound, ReadFailure, ParseFailure, FetchFailure,
            ValidationFailure, MergeConflict: From loading any module
        """
        if module.is_resolved:
            return

        context.begin(module)
        try:
            deps: Dict[str, Module] = {}
            effective: Dict[str, Dependency] = {}

            for dependency in module.config.dependencies:
                dependency.validate()

                paths = self.locator.locate(dependency.source, module.working_dir)
                if len(paths) > 1:
                    logger.warning(
                        f"{module.name}: dependency '{dependency.name}' matches "
                        f"{len(paths)} definitions, using {os.path.basename(paths[-1])}"
                    )

                for path in paths:
                    candidate = self.read(path, os.path.dirname(path), Level.DEPENDENCY)
                    content_hash = candidate.content_hash

                    if context.is_in_progress(content_hash):
                        raise CycleDetected(
                            f"Dependency cycle detected: {context.chain(path)}"
                        )

                    cached = context.get(content_hash)
                    if cached is None:
                        cached = context.add(candidate)
                        self.resolve_dependencies(cached, context)
                    else:
                        logger.debug(f"{os.path.basename(path)} already loaded as {cached.name}")

                    deps[dependency.name] = cached

                effective[dependency.name] = self._effective_dependency(
                    dependency, deps[dependency.name]
                )

            if set(deps) != set(module.config.dependency_names()):
                raise ValidationFailure(f"{module.name}: dependencies were not fully resolved")

            module._set_dependencies(deps, effective)
        finally:
            context.finish(module)

    @staticmethod
    def _effective_dependency(dependency: Dependency, target: Module) -> Dependency:
        effective = Dependency(
            name=dependency.name,
            source=dependency.source,
            backend=copy.deepcopy(target.config.backend),
        )
        effective.merge(dependency)
        return effective

    def load_module_graphs(self, location: str, working_dir: str) -> List[Module]:
        """
        Load every definition at location and resolve their graphs.

        All roots share one ResolutionContext, so identical definitions are
        loaded once.
        """
        context = ResolutionContext()
        roots = []
        for module in self.load(location, working_dir, Level.ROOT):
            root = context.add(module)
            self.resolve_dependencies(root, context)
            roots.append(root)
        return roots

    def load_module_graph(self, location: str, working_dir: str) -> Module:
        """
        Load a single root definition and resolve its graph.

        Raises:
            ValidationFailure: If location yields more than one definition
        """
        modules = self.load(location, working_dir, Level.ROOT)
        if len(modules) != 1:
            raise ValidationFailure(
                f"{location} contains {len(modules)} definitions, expected exactly one"
            )

        context = ResolutionContext()
        root = context.add(modules[0])
        self.resolve_dependencies(root, context)
        return root


def load_module_graph(location: str, working_dir: str, loader: Optional[ModuleLoader] = None) -> Module:
    """Load a root definition and its full dependency graph."""
    return (loader or ModuleLoader()).load_module_graph(location, working_dir)
