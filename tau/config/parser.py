"""
Parser for tau definition files.

Definition files are HCL. This module turns their content into Config
objects, extracting module, dependency, backend, inputs, environment
and hook blocks.
"""

import logging
import re
from typing import Any, Dict, List, Optional

import hcl2

from ..errors import ParseFailure
from .model import Backend, Config, Dependency, Hook, ModuleSource

logger = logging.getLogger(__name__)

_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|.)", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\"": "\"", "\\": "\\"}


def _decode_escape(match: re.Match) -> str:
    escape = match.group(1)
    if escape[0] in "uU" and len(escape) > 1:
        return chr(int(escape[1:], 16))
    # Unknown escapes are kept as written
    return _SIMPLE_ESCAPES.get(escape, match.group(0))


class ConfigParser:
    """
    Parse tau definition files into Config objects.

    hcl2 returns blocks as lists of single-key dicts and, depending on its
    version, may keep quotes around labels and strings. Values are
    normalized before building the model.
    """

    def parse(self, content: bytes, origin: str) -> Config:
        """
        Parse definition content.

        Args:
            content: Raw bytes of the definition file
            origin: Path or URL the content came from (used in errors)

        Returns:
            Validated Config

        Raises:
            ParseFailure: If content is not valid HCL or blocks are malformed
            ValidationFailure: If dependencies are incomplete or duplicated
        """
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseFailure(f"{origin}: not valid UTF-8: {e}") from e

        try:
            parsed = hcl2.loads(text)
        except Exception as e:
            raise ParseFailure(f"{origin}: {e}") from e

        parsed = self._clean(parsed)

        try:
            config = Config(
                module=self._parse_module(parsed),
                dependencies=self._parse_dependencies(parsed),
                backend=self._parse_backend(parsed.get("backend")),
                inputs=self._merge_blocks(parsed, "inputs"),
                env={k: str(v) for k, v in self._merge_blocks(parsed, "environment_variables").items()},
                hooks=self._parse_hooks(parsed),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ParseFailure(f"{origin}: malformed block: {e}") from e

        config.validate()
        logger.debug(
            f"Parsed {origin}: {len(config.dependencies)} dependencies, "
            f"{len(config.inputs)} inputs"
        )
        return config

    @classmethod
    def _clean(cls, value: Any) -> Any:
        """Strip quotes and hcl2 metadata keys recursively."""
        if isinstance(value, str):
            return cls._unescape(cls._unquote(value))
        if isinstance(value, list):
            return [cls._clean(item) for item in value]
        if isinstance(value, dict):
            return {
                cls._unquote(key): cls._clean(item)
                for key, item in value.items()
                if not key.startswith("__")
            }
        return value

    @staticmethod
    def _unquote(value: str) -> str:
        if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
            return value[1:-1]
        return value

    @staticmethod
    def _unescape(value: str) -> str:
        """Decode HCL string escapes, which hcl2 leaves in place."""
        if "\\" not in value:
            return value
        return _ESCAPE_RE.sub(_decode_escape, value)

    @staticmethod
    def _unwrap(value: Any) -> Any:
        """Unwrap a value that may be wrapped in a single-element list by hcl2."""
        if isinstance(value, list) and len(value) == 1:
            return value[0]
        return value

    @staticmethod
    def _blocks(parsed: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
        blocks = parsed.get(key, [])
        if isinstance(blocks, dict):
            return [blocks]
        return list(blocks)

    @classmethod
    def _labelled(cls, parsed: Dict[str, Any], key: str) -> List[tuple]:
        """Return (label, body) pairs for blocks such as `dependency "net" {}`."""
        pairs = []
        for block in cls._blocks(parsed, key):
            for label, body in block.items():
                pairs.append((label, cls._unwrap(body) or {}))
        return pairs

    @classmethod
    def _merge_blocks(cls, parsed: Dict[str, Any], key: str) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for block in cls._blocks(parsed, key):
            merged.update(block)
        return merged

    @classmethod
    def _parse_module(cls, parsed: Dict[str, Any]) -> Optional[ModuleSource]:
        body = cls._merge_blocks(parsed, "module")
        if not body:
            return None
        return ModuleSource(
            source=str(body.get("source", "")),
            version=str(body.get("version", "") or ""),
        )

    @classmethod
    def _parse_backend(cls, blocks: Any) -> Optional[Backend]:
        if not blocks:
            return None
        if isinstance(blocks, dict):
            blocks = [blocks]

        backend = None
        for block in blocks:
            for backend_type, body in block.items():
                backend = Backend(type=backend_type, config=dict(cls._unwrap(body) or {}))
        return backend

    @classmethod
    def _parse_dependencies(cls, parsed: Dict[str, Any]) -> List[Dependency]:
        dependencies = []
        for name, body in cls._labelled(parsed, "dependency"):
            dependencies.append(Dependency(
                name=name,
                source=str(cls._unwrap(body.get("source", "")) or ""),
                backend=cls._parse_backend(body.get("backend")),
            ))
        return dependencies

    @classmethod
    def _parse_hooks(cls, parsed: Dict[str, Any]) -> List[Hook]:
        hooks = []
        for name, body in cls._labelled(parsed, "hook"):
            args = body.get("args", [])
            if isinstance(args, str):
                args = [args]
            hooks.append(Hook(
                name=name,
                trigger_on=str(cls._unwrap(body.get("trigger_on", ""))),
                command=str(cls._unwrap(body.get("command", ""))),
                args=[str(arg) for arg in args],
                set_env=bool(cls._unwrap(body.get("set_env", False))),
            ))
        return hooks
