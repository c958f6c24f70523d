"""
Redaction of sensitive values in process output.

Outputs marked sensitive by Terraform are registered here so that they
never appear in log lines, even at DEBUG level.
"""

from typing import Any, Iterable, List


class OutputRedactor:
    """
    Redacts sensitive values from text output.

    Example:
        >>> redactor = OutputRedactor(["secret123"])
        >>> redactor.redact("Connecting with key: secret123")
        'Connecting with key: [REDACTED]'
    """

    REPLACEMENT = "[REDACTED]"

    # Shorter strings are too common in ordinary output to replace
    MIN_LENGTH = 6

    def __init__(self, sensitive_values: Iterable[Any] = ()):
        """
        Initialize redactor with sensitive values.

        Args:
            sensitive_values: Values whose text form must never be shown
        """
        self.sensitive_values: List[str] = []
        self.add_sensitive_values(sensitive_values)

    def add_sensitive_values(self, values: Iterable[Any]):
        """
        Add sensitive values to redaction list.

        Collections are added element by element. Only strings of at least
        MIN_LENGTH characters are kept; numbers, booleans, null and short
        strings would mangle unrelated text.
        """
        for value in values:
            if isinstance(value, dict):
                self.add_sensitive_values(value.values())
            elif isinstance(value, (list, tuple)):
                self.add_sensitive_values(value)
            elif isinstance(value, str):
                if len(value) >= self.MIN_LENGTH and value not in self.sensitive_values:
                    self.sensitive_values.append(value)

        # Longest first so a secret containing another is replaced whole
        self.sensitive_values.sort(key=len, reverse=True)

    def redact(self, text: str) -> str:
        """
        Replace any occurrence of sensitive values with [REDACTED].

        Uses exact, case-sensitive string matching (not regex).

        Args:
            text: Text to redact

        Returns:
            Text with sensitive values replaced by [REDACTED]
        """
        if not text:
            return text

        redacted = text
        for sensitive_value in self.sensitive_values:
            redacted = redacted.replace(sensitive_value, self.REPLACEMENT)

        return redacted

    def clear(self):
        """Forget all sensitive values."""
        self.sensitive_values.clear()
