"""
Validation utilities for tau.
"""

import re
import shutil
import subprocess
from typing import Optional, Tuple

_VERSION_RE = re.compile(r'v?(\d+\.\d+\.\d+)')


def parse_terraform_version(text: str) -> Optional[str]:
    """
    Extract the version number from `terraform version` output.

    Args:
        text: Output such as "Terraform v0.12.31\\non linux_amd64"

    Returns:
        Version string like "0.12.31", or None if not found
    """
    first_line = text.strip().split('\n')[0] if text else ""
    match = _VERSION_RE.search(first_line)
    return match.group(1) if match else None


def validate_terraform_installed(terraform_binary: str = "terraform") -> Tuple[bool, Optional[str]]:
    """
    Check if Terraform is installed and accessible.

    Args:
        terraform_binary: Path or name of terraform binary

    Returns:
        Tuple of (is_installed, version_string)
        If not installed, version_string is None
    """
    # Check if binary exists in PATH
    if not shutil.which(terraform_binary):
        return False, None

    try:
        from . import subprocess_creation_flags
        result = subprocess.run(
            [terraform_binary, "version"],
            capture_output=True,
            text=True,
            timeout=5,
            creationflags=subprocess_creation_flags(),
        )

        if result.returncode == 0:
            return True, parse_terraform_version(result.stdout)
        else:
            return False, None

    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return False, None
