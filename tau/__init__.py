"""
tau - resolve Terraform module dependencies from deployed remote state.
"""

__version__ = "0.4.0"
