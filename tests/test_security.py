"""
Tests for security module - InputSanitizer and OutputRedactor.
"""

import pytest

from tau.errors import ValidationFailure
from tau.security import InputSanitizer, OutputRedactor, SecurityError


def test_sanitize_variable_name_valid():
    """Test valid variable names are accepted."""
    valid_names = [
        "region",
        "instance_type",
        "_private_key",
        "var-with-hyphens",
        "MixedCase123",
    ]

    for name in valid_names:
        result = InputSanitizer.sanitize_variable_name(name)
        assert result == name


def test_sanitize_variable_name_invalid():
    """Test invalid variable names raise SecurityError."""
    invalid_names = [
        "",  # Empty
        "123invalid",  # Starts with digit
        "has spaces",  # Contains spaces
        "has@symbol",  # Invalid character
        "has.dot",  # Invalid character
        "-starts-with-hyphen",  # Starts with hyphen
    ]

    for name in invalid_names:
        with pytest.raises(SecurityError):
            InputSanitizer.sanitize_variable_name(name)


def test_sanitize_variable_name_too_long():
    """Test that extremely long names are rejected."""
    with pytest.raises(SecurityError):
        InputSanitizer.sanitize_variable_name("a" * 500)


def test_security_error_is_validation_failure():
    """SecurityError is reported like any other validation failure."""
    assert issubclass(SecurityError, ValidationFailure)


def test_sanitize_dependency_name_blocks_traversal():
    """Dependency names become directories, so path parts are rejected."""
    for name in ["../escape", "a/b", "..", "a\\b", ""]:
        with pytest.raises(SecurityError, match="Invalid dependency name"):
            InputSanitizer.sanitize_dependency_name(name)

    assert InputSanitizer.sanitize_dependency_name("network-hub") == "network-hub"


def test_sanitize_env_name():
    """Environment names allow letters, digits and underscores only."""
    assert InputSanitizer.sanitize_env_name("ARM_ACCESS_KEY") == "ARM_ACCESS_KEY"
    assert InputSanitizer.sanitize_env_name("_x1") == "_x1"

    for name in ["", "1ABC", "WITH-HYPHEN", "HAS SPACE"]:
        with pytest.raises(SecurityError):
            InputSanitizer.sanitize_env_name(name)


def test_is_safe_command_arg():
    """Null bytes and oversized arguments are unsafe; shell characters are not."""
    assert InputSanitizer.is_safe_command_arg("-json")
    assert InputSanitizer.is_safe_command_arg("value;with|shell&chars")
    assert not InputSanitizer.is_safe_command_arg("bad\x00arg")
    assert not InputSanitizer.is_safe_command_arg("x" * 10001)


def test_redactor_replaces_values():
    """Registered values are replaced wherever they appear."""
    redactor = OutputRedactor(["secret123"])
    assert redactor.redact("key: secret123, again secret123") == "key: [REDACTED], again [REDACTED]"


def test_redactor_longest_first():
    """A secret containing another secret is replaced whole."""
    redactor = OutputRedactor(["token1", "token1-extended"])
    assert redactor.redact("key=token1-extended") == "key=[REDACTED]"


def test_redactor_collections():
    """Nested outputs are registered leaf by leaf."""
    redactor = OutputRedactor()
    redactor.add_sensitive_values([{"user": "administrator", "keys": ["key-0a1b2c", "key-3d4e5f"]}])

    assert redactor.redact("administrator key-0a1b2c key-3d4e5f") == "[REDACTED] [REDACTED] [REDACTED]"


def test_redactor_ignores_trivial_values():
    """Booleans, null and empty strings are never registered."""
    redactor = OutputRedactor([True, None, ""])
    assert redactor.sensitive_values == []
    assert redactor.redact("True None") == "True None"


def test_redactor_ignores_numbers_and_short_strings():
    """Small outputs such as counts and region codes leave log lines readable."""
    redactor = OutputRedactor()
    redactor.add_sensitive_values([{"replicas": 1, "port": 5432, "region": "eu", "ratio": 0.5}])

    assert redactor.sensitive_values == []
    assert redactor.redact("Error: exit 1 in europe region") == "Error: exit 1 in europe region"


def test_redactor_clear():
    redactor = OutputRedactor(["secret"])
    redactor.clear()
    assert redactor.redact("secret") == "secret"


def test_redactor_empty_text():
    assert OutputRedactor(["x"]).redact("") == ""
