"""
Input sanitization and validation for tau.

This module provides input validation to prevent:
- Path traversal through dependency names used as directory names
- Unsafe subprocess arguments
- Invalid Terraform variable and environment variable names
"""

import re

from ..errors import ValidationFailure


class SecurityError(ValidationFailure):
    """Raised when a security validation fails."""
    pass


class InputSanitizer:
    """
    Provides input validation methods.

    All methods raise SecurityError if validation fails.
    """

    # Terraform identifier: must start with letter/underscore,
    # can contain letters, digits, underscores, hyphens
    VARIABLE_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_-]*$')

    # Environment variable names exported by hooks
    ENV_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')

    # Maximum lengths to prevent resource exhaustion
    MAX_VARIABLE_NAME_LENGTH = 255
    MAX_COMMAND_ARG_LENGTH = 10000

    @staticmethod
    def sanitize_variable_name(name: str) -> str:
        """
        Validate a Terraform identifier (variable, output or block label).

        Rules:
        - Must start with letter or underscore
        - Can contain letters, digits, underscores, hyphens
        - Max length: 255 characters

        Args:
            name: Name to validate

        Returns:
            Validated name (unchanged if valid)

        Raises:
            SecurityError: If name is invalid
        """
        if not name:
            raise SecurityError("Variable name cannot be empty")

        if len(name) > InputSanitizer.MAX_VARIABLE_NAME_LENGTH:
            raise SecurityError(
                f"Variable name too long (max {InputSanitizer.MAX_VARIABLE_NAME_LENGTH})"
            )

        if not InputSanitizer.VARIABLE_NAME_PATTERN.match(name):
            raise SecurityError(
                f"Invalid variable name '{name}': must start with letter/underscore, "
                "contain only letters, digits, underscores, hyphens"
            )

        return name

    @staticmethod
    def sanitize_dependency_name(name: str) -> str:
        """
        Validate a dependency name.

        Dependency names become subdirectory names and remote state labels,
        so they follow Terraform identifier rules. This rules out path
        separators and "..".

        Raises:
            SecurityError: If name is invalid
        """
        try:
            return InputSanitizer.sanitize_variable_name(name)
        except SecurityError as e:
            raise SecurityError(f"Invalid dependency name: {e}") from e

    @staticmethod
    def sanitize_env_name(name: str) -> str:
        """
        Validate an environment variable name.

        Raises:
            SecurityError: If name is invalid
        """
        if not name or not InputSanitizer.ENV_NAME_PATTERN.match(name):
            raise SecurityError(f"Invalid environment variable name '{name}'")
        return name

    @staticmethod
    def is_safe_command_arg(arg: str) -> bool:
        """
        Check if a command argument is safe to pass to subprocess.

        Commands always run with shell=False; this rejects arguments that
        are still unsafe in that mode.

        Args:
            arg: Command argument to check

        Returns:
            True if safe, False otherwise
        """
        # Null bytes truncate arguments at the OS boundary
        if '\x00' in arg:
            return False

        if len(arg) > InputSanitizer.MAX_COMMAND_ARG_LENGTH:
            return False

        return True
