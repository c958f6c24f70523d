"""
Default settings for tau.

These are the default values used when no user configuration exists.
"""

DEFAULT_SETTINGS = {
    "version": "1.0.0",

    # Terraform binary
    "terraform_binary": "terraform",

    # Seconds before a remote source download is abandoned
    "fetch_timeout": 10,

    # Files written into module and dependency directories
    "variable_file": "terraform.tfvars",
    "override_file": "tau_override.tf",
    "dependency_file": "main.tf",

    # Working directories, relative to the module working directory
    "dependency_dir": ".tau/dependencies",
    "source_cache_dir": ".tau/sources",

    # Files in a directory that count as tau definitions
    "definition_extensions": [".hcl", ".tau"],

    # Prefix for flattened environment style output
    "env_root_token": "TAU",

    "log_level": "INFO",
}
