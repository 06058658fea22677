"""Command-line interface for Tessera.

This module defines the CLI commands using Click framework.

Commands:
- build: Build the site into the output directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from . import __version__


@click.group()
@click.version_option(version=__version__, prog_name="tessera")
def cli():
    """Tessera static-site asset builder."""


@cli.command()
@click.option(
    "--src",
    "src_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Source directory (overrides tessera.yaml src_dir)",
)
@click.option(
    "--out",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory (overrides tessera.yaml output_dir)",
)
@click.option(
    "--clean/--no-clean",
    default=None,
    help="Empty the output directory before building",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors")
def build(
    src_dir: Path | None,
    output_dir: Path | None,
    clean: bool | None,
    verbose: bool,
    quiet: bool,
):
    """Build the site into the output directory."""
    _configure_logging(verbose, quiet)
    project_root = Path.cwd()
    from .build import BuildError, ConfigError, build_site

    try:
        result = build_site(
            project_root,
            src_dir=_absolute(project_root, src_dir),
            output_dir=_absolute(project_root, output_dir),
            clean=clean,
        )
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(
            click.style(f"  File: {_display_path(exc.source_path, project_root)}", fg="yellow"),
            err=True,
        )
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    except (ConfigError, FileNotFoundError) as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Error: {exc}", fg="white"), err=True)
        raise SystemExit(1) from None

    click.echo(
        f"Built {_display_path(result.output_dir, project_root)}: "
        f"{len(result.components)} components inlined, "
        f"{len(result.resized)} images resized, "
        f"{len(result.compressed)} images compressed, "
        f"{len(result.copied)} files copied"
    )


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _absolute(project_root: Path, path: Path | None) -> Path | None:
    if path is None:
        return None
    return path if path.is_absolute() else project_root / path


def _display_path(path: Path, project_root: Path) -> Path:
    try:
        return path.relative_to(project_root)
    except ValueError:
        return path


def main():
    """Entry point for the CLI application."""
    cli()
