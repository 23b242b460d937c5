# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import importlib
import inspect
import logging
import pkgutil

import rich_click as click

from rich.console import Console

from saverelations.config import Settings


logger = logging.getLogger("saverelations.cli")
console = Console()


def getCliLogger(suffix: str) -> logging.Logger:
    return logger.getChild(suffix)


def register_cli_commands(cli_group: click.Group) -> None:
    """
    Register all CLI commands of the submodules in the given CLI group.
    """
    package = importlib.import_module(__name__)

    for _, module_name, is_pkg in pkgutil.iter_modules(
        package.__path__, package.__name__ + "."
    ):
        if is_pkg:
            continue

        module = importlib.import_module(module_name)

        for name, obj in inspect.getmembers(module):
            if isinstance(obj, click.Command) and not isinstance(obj, click.Group):
                cli_group.add_command(obj, name=getattr(obj, "name", name))


class CliContext:
    """CLI context containing the settings."""

    def __init__(self, settings: Settings):
        self.settings = settings


@click.group()
@click.option(
    "--env-file", default=".env", help="The environment file to use (default: .env)."
)
@click.pass_context
def cli(ctx: click.Context, env_file: str):
    """Save relations CLI"""
    from saverelations.config import init_settings
    from saverelations.logger import setup_logging

    settings = init_settings(env_file)
    setup_logging(
        settings.log_level,
        settings.log_output,
        settings.log_format,
        settings.log_path,
    )
    ctx.obj = CliContext(settings)


def main():
    register_cli_commands(cli)
    cli()


__all__ = [
    "CliContext",
    "cli",
    "console",
    "getCliLogger",
    "main",
    "register_cli_commands",
]
