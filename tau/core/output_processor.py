"""
Parsing of `terraform output -json`.

Terraform prints a JSON object mapping each output name to its value,
type and sensitivity. Values keep their JSON types (string, number,
bool, list, object) instead of being collapsed to text.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict

from ..errors import ParseFailure

logger = logging.getLogger(__name__)


@dataclass
class OutputValue:
    """
    A single Terraform output.

    Attributes:
        value: Output value with its native JSON type
        sensitive: Whether Terraform marks the output sensitive
        type: Terraform type description, if reported
    """
    value: Any
    sensitive: bool = False
    type: Any = None


def parse_output(text: str) -> Dict[str, OutputValue]:
    """
    Parse captured `terraform output -json` text.

    Args:
        text: Raw stdout of the output command

    Returns:
        Dict of output name to OutputValue (empty if there are no outputs)

    Raises:
        ParseFailure: If text is not the expected JSON document
    """
    if not text.strip():
        return {}

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseFailure(f"Invalid JSON in terraform output: {e}") from e

    if not isinstance(document, dict):
        raise ParseFailure(
            f"Expected a JSON object from terraform output, got {type(document).__name__}"
        )

    outputs = {}
    for name, entry in document.items():
        if not isinstance(entry, dict) or "value" not in entry:
            raise ParseFailure(f"Output '{name}' has no value")
        outputs[name] = OutputValue(
            value=entry["value"],
            sensitive=bool(entry.get("sensitive", False)),
            type=entry.get("type"),
        )

    logger.debug(f"Parsed {len(outputs)} outputs")
    return outputs


def output_values(outputs: Dict[str, OutputValue]) -> Dict[str, Any]:
    """Strip metadata, returning output name -> value."""
    return {name: output.value for name, output in outputs.items()}
