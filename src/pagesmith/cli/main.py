"""Main CLI entry point."""
import asyncio
import functools
import sys
from pathlib import Path

import click

from pagesmith.compiler.build import build_project, clean as clean_output
from pagesmith.compiler.exceptions import FileSystemError
from pagesmith.compiler.routes import format_route_table
from pagesmith.config import DEVELOPMENT, PRODUCTION, SANDBOX, load_config, resolve_environment
from pagesmith.runtime.context import BuildContext
from pagesmith.runtime.logging import configure_logging

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000


def build_options(func):
    """Options shared by every command that touches the site."""

    @click.option("--src", "src_dir", default=None, type=click.Path(path_type=Path), help="Source root")
    @click.option("--dest", "dest_dir", default=None, type=click.Path(path_type=Path), help="Output root")
    @click.option("--production", "mode", flag_value=PRODUCTION, help="Fingerprinted, minified build")
    @click.option("--development", "mode", flag_value=DEVELOPMENT, help="Plain names, symlinked assets")
    @click.option("--sandbox", "mode", flag_value=SANDBOX, help="Like development, flagged as sandbox")
    @click.option("--silent", is_flag=True, help="Don't log every compiled file")
    @click.option("--config", "config_file", default=None, type=click.Path(path_type=Path), help="Config file")
    @functools.wraps(func)
    def wrapper(src_dir, dest_dir, mode, silent, config_file, **kwargs):
        config = load_config(config_file)
        verbose = False if silent else bool(config.get("verbose", True))
        configure_logging(verbose)
        context = BuildContext.create(
            src_dir=src_dir or config.get("src_dir", "src"),
            dest_dir=dest_dir or config.get("dest_dir", "public"),
            environment=resolve_environment(mode, config.get("environment")),
            verbose=verbose,
        )
        return func(context, config, **kwargs)

    return wrapper


def _build(context: BuildContext, keep_going: bool = False) -> None:
    """Run a full build; only filesystem errors stop a keep_going build."""
    try:
        report = asyncio.run(build_project(context))
    except FileSystemError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    if report.ok:
        return
    if keep_going:
        click.secho(
            f"⚠️  Build finished with {len(report.failures)} error(s), watching for fixes",
            fg="yellow",
            err=True,
        )
        return
    click.secho(f"❌ Build failed with {len(report.failures)} error(s)", fg="red", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="pagesmith")
def cli():
    """Pagesmith static site builder.

    Run 'pagesmith build' to compile src/ into public/.
    Run 'pagesmith watch' to rebuild on change and preview the result.
    """
    pass


@cli.command()
@build_options
def build(context, config):
    """Clean and build the whole site."""
    click.echo(f"🔨 Building {context.layout.src_dir} ({context.environment})...")
    _build(context)
    click.echo("✅ Build complete")


@cli.command()
@build_options
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
def watch(context, config, host, port):
    """Build, then rebuild on change while serving the output."""
    from pagesmith.runtime.dev_server import run_dev_server

    host = host or config.get("host", DEFAULT_HOST)
    port = port or config.get("port", DEFAULT_PORT)

    _build(context, keep_going=True)
    click.echo(f"🚀 Previewing on http://{host}:{port}")
    asyncio.run(run_dev_server(context, host=host, port=port))


@cli.command()
@build_options
def routes(context, config):
    """Build, then print every route helper."""
    _build(context)
    for line in format_route_table(context.routes):
        click.echo(line)


@cli.command()
@build_options
def clean(context, config):
    """Remove everything in the output tree."""
    try:
        asyncio.run(clean_output(context))
    except FileSystemError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    click.echo(f"🧹 Cleaned {context.layout.dest_dir}")


if __name__ == "__main__":
    cli()
