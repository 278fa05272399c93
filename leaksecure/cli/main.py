"""
Leak Secure CLI - Main entry point
"""
import asyncio

import click

from leaksecure import __version__
from leaksecure.cli import scan
from leaksecure.cli.scan import emit
from leaksecure.core.exceptions import ConfigurationError, ValidationError
from leaksecure.core.service import TOOLS, ScanService
from leaksecure.utils.config import ScannerConfig
from leaksecure.utils.logger import configure_logging


@click.group()
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx):
    """
    🛡️  Leak Secure - Secret Scanner

    Detect hard-coded secrets in GitHub repositories and source code, and
    assess the resulting risk.

    WORKFLOW:

    1. Set a token (optional, raises the GitHub rate limit):
       export GITHUB_TOKEN=YOUR_TOKEN

    2. Scan:
       leaksecure scan repo owner/name --branch main
       leaksecure scan code path/to/file.py

    3. Assess:
       leaksecure analyze owner/name
    """
    ctx.ensure_object(dict)
    if "service" in ctx.obj:
        return

    try:
        config = ScannerConfig.from_env()
    except ConfigurationError as e:
        raise click.ClickException(e.message)

    configure_logging(config.log_level, production=config.is_production)
    ctx.obj["service"] = ScanService(config=config)


@cli.command("types")
@click.pass_context
def types_cmd(ctx):
    """📋 List the supported secret types."""
    emit(ctx, asyncio.run(ctx.obj["service"].handle("get_secret_types")))


@cli.command("validate")
@click.argument("secret_type")
@click.argument("value")
@click.pass_context
def validate_cmd(ctx, secret_type: str, value: str):
    """✔️  Get validation advice for a SECRET_TYPE and VALUE."""
    response = asyncio.run(
        ctx.obj["service"].handle("validate_secret", {"secret_type": secret_type, "value": value})
    )
    emit(ctx, response)


@cli.command("resource")
@click.argument("uri", required=False)
@click.pass_context
def resource_cmd(ctx, uri):
    """📚 Print a resource (secret types or patterns), or list them."""
    service: ScanService = ctx.obj["service"]
    if uri is None:
        for item in service.list_resources():
            click.echo(f"{item['uri']:<30} {item['name']}")
        return

    try:
        click.echo(service.read_resource(uri)["text"])
    except ValidationError as e:
        raise click.ClickException(e.message)


@cli.command("tools")
def tools_cmd():
    """List the available scan operations."""
    for name, description in TOOLS.items():
        click.echo(f"{name:<20} {description}")


# Register subcommands
cli.add_command(scan.scan)
cli.add_command(scan.analyze)


if __name__ == '__main__':
    cli()
