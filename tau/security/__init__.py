"""
Security module for tau.

This module provides input validation for names that reach the file
system or subprocess arguments, and redaction of sensitive output.
"""

from .sanitizer import InputSanitizer, SecurityError
from .redactor import OutputRedactor

__all__ = ["InputSanitizer", "SecurityError", "OutputRedactor"]
