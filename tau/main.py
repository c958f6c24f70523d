"""
tau - command line entry point.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .config import ConfigParser, Settings
from .core import Engine, ModuleLoader, OutputBuffer, SourceLocator, ValueTree, format_tree
from .core.output_formatter import OUTPUT_FORMATS
from .core.output_processor import output_values, parse_output
from .errors import TauError
from .utils import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tau",
        description="Resolve Terraform module dependencies from deployed remote state.",
    )
    parser.add_argument("--version", action="version", version=f"tau {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug output")
    parser.add_argument("--log-file", action="store_true", help="also log to a file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("resolve", "resolve dependencies and write the variable file"),
        ("output", "print the outputs of a module"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("-f", "--file", default=".", help="definition file or directory")
        sub.add_argument(
            "-o", "--output",
            default="plain",
            type=str.lower,
            choices=OUTPUT_FORMATS,
            help="output format",
        )

    return parser


def _loader(settings: Settings) -> ModuleLoader:
    locator = SourceLocator(
        extensions=settings.definition_extensions,
        timeout=settings.fetch_timeout,
        cache_dir=settings.get("source_cache_dir", ".tau/sources"),
    )
    return ModuleLoader(ConfigParser(), locator)


def run_resolve(args: argparse.Namespace, settings: Settings) -> int:
    modules = _loader(settings).load_module_graphs(args.file, os.getcwd())
    engine = Engine.for_installed_terraform(settings)

    for module in modules:
        engine.create_overrides(module.config, module.working_dir)
        tree = engine.propagate(module)
        if tree is not None and not tree.is_empty():
            print(format_tree(tree, args.output, settings.get("env_root_token", "TAU")))

    return 0


def run_output(args: argparse.Namespace, settings: Settings) -> int:
    modules = _loader(settings).load_module_graphs(args.file, os.getcwd())
    if not modules:
        logger.warning("No sources found")
        return 0

    if len(modules) > 1 and args.output != "plain":
        raise TauError("can only process a single file when using output argument")

    engine = Engine.for_installed_terraform(settings)
    root_token = settings.get("env_root_token", "TAU")

    hook_env = {
        module.location: engine.hooks.run(module.config, "prepare", "output", module.working_dir)
        for module in modules
    }

    # Resolve first when no module has a variable file yet
    if not any(engine.has_input_variables(module.working_dir) for module in modules):
        for module in modules:
            engine.propagate(module)

    for module in modules:
        if not engine.has_input_variables(module.working_dir):
            logger.warning(f"No values file exists for {module.name}")
            continue

        env = dict(module.config.env)
        env.update(hook_env[module.location])

        buffer = OutputBuffer()
        engine.executor.execute(
            "output", "-json",
            working_dir=module.working_dir,
            env=env,
            stdout=[buffer],
            stderr=[engine.executor.log_lines(logging.ERROR)],
        )
        tree = ValueTree.from_flat(output_values(parse_output(buffer.text())))
        print(format_tree(tree, args.output, root_token))

        engine.clear_input_variables(module.working_dir)

    for module in modules:
        engine.hooks.run(module.config, "finish", "output", module.working_dir)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for tau."""
    args = build_parser().parse_args(argv)
    settings = Settings()

    log_level = "DEBUG" if args.verbose else settings.get("log_level", "INFO")
    setup_logging(log_level=log_level, log_file=args.log_file)

    commands = {
        "resolve": run_resolve,
        "output": run_output,
    }

    try:
        return commands[args.command](args, settings)
    except (TauError, OSError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
