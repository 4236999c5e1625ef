import logging
import os
import sys

import click
from dotenv import load_dotenv

from . import config
from .concatenator import (
    concatenate_files,
    estimate_tokens,
    format_duration,
    generate_output_filename,
    render_tree,
    write_output,
)
from .errors import RepoConcatError
from .models import SourceConfig
from .resolver import RepositoryResolver, validate_source
from .selection import FilterSpec, collect, dry_run
from .utils.timestamps import utc_now
from .volume_manager import RepoCache

logger = logging.getLogger(__name__)

MAX_EXCLUDED_SHOWN = 20


def _source_options(func):
    func = click.option(
        "--include",
        "-i",
        multiple=True,
        help="Regex, glob, or /dir pattern to include (if given, only matching files are kept)",
    )(func)
    func = click.option(
        "--exclude",
        "-e",
        multiple=True,
        help="Regex, glob, or /dir pattern to exclude (can be used multiple times)",
    )(func)
    func = click.option("--path", default=None, help="Local directory path")(func)
    func = click.option("--url", default=None, help="Remote repository URL")(func)
    return func


def _fail(error) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _resolve(source: SourceConfig) -> str:
    resolver = RepositoryResolver()
    repo_path = resolver.resolve(source)
    if source.path:
        click.echo(f"Processing local directory: {source.path}")
    elif resolver.last_cached_at is not None:
        age = (utc_now() - resolver.last_cached_at).total_seconds()
        click.echo(f"Using cached repository (cached {format_duration(age)} ago): {source.url}")
    else:
        click.echo(f"Cloned repository: {source.url}")
    return repo_path


def _prepare(url, path, exclude, include):
    """Validates the source and the patterns before any filesystem or network access."""
    source = SourceConfig(url=url, path=path, exclusions=list(exclude), inclusions=list(include))
    validate_source(source)
    spec = FilterSpec.build(source.exclusions, source.inclusions)
    return source, spec


def _print_dry_run(result) -> None:
    click.echo("\nDry run - Files that would be processed:")
    if result.included:
        click.echo(f"\nFiles to be included ({len(result.included)}):")
        for record in result.included:
            click.echo(f"  📄 {record.rel_path}")
    else:
        click.echo("\nNo files would be included with current filters")

    if 0 < len(result.excluded) <= MAX_EXCLUDED_SHOWN:
        click.echo(f"\nFiles excluded ({len(result.excluded)}):")
        for record in result.excluded:
            click.echo(f"  🚫 {record.rel_path}")
    elif len(result.excluded) > MAX_EXCLUDED_SHOWN:
        click.echo(f"\nFiles excluded: {len(result.excluded)} (too many to display)")

    click.echo(f"\nSummary: {len(result.included)} files to include, {len(result.excluded)} files excluded")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable INFO logging")
def cli(verbose):
    """repo-concat - select repository files and concatenate them into one document"""
    # Load .env from current working directory
    load_dotenv(os.path.join(os.getcwd(), ".env"))
    level = "INFO" if verbose else config.log_level()
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


@cli.command()
@_source_options
@click.option("--peek", is_flag=True, help="Show folder structure and a dry run before processing")
@click.option("--output", "-o", default=".", help="Output directory for the concatenated file")
@click.option("--tokens/--no-tokens", default=True, help="Estimate token count")
def concat(url, path, exclude, include, peek, output, tokens):
    """Concatenate the selected files of a repository."""
    try:
        source, spec = _prepare(url, path, exclude, include)
        repo_path = _resolve(source)

        if peek:
            result = dry_run(repo_path, spec)
            if source.exclusions or source.inclusions:
                click.echo("\nFiltered repository structure (only showing relevant directories):")
                tree = render_tree(repo_path, relevant=result.included_paths)
            else:
                click.echo("\nRepository structure:")
                tree = render_tree(repo_path)
            for line in tree:
                click.echo(line)
            _print_dry_run(result)

            if not click.confirm("\nProceed with concatenation?", default=False):
                click.echo("Operation cancelled")
                return

        files = collect(repo_path, spec)
        content = concatenate_files(files, repo_path)
        output_path = write_output(content, output, generate_output_filename(source))
    except (RepoConcatError, OSError) as e:
        _fail(e)

    if tokens:
        click.echo(f"Estimated tokens: {estimate_tokens(content)}")
    click.echo(f"Files concatenated to: {output_path}")
    click.echo(f"Total files processed: {len(files)}")


@cli.command()
@_source_options
def scan(url, path, exclude, include):
    """Dry run: list included and excluded files without writing anything."""
    try:
        source, spec = _prepare(url, path, exclude, include)
        repo_path = _resolve(source)
        result = dry_run(repo_path, spec)
    except (RepoConcatError, OSError) as e:
        _fail(e)

    _print_dry_run(result)


@cli.group()
def cache():
    """Repository cache maintenance."""
    pass


@cache.command()
def prune():
    """Remove expired or orphaned cache entries."""
    removed = RepoCache().prune()
    click.echo(f"Pruned {removed} stale cache entries.")


@cache.command()
@click.argument("url")
def forget(url):
    """Drop the cached checkout of URL."""
    if RepoCache().invalidate(url):
        click.echo(f"Removed cached repository for {url}")
    else:
        click.echo(f"No cached repository for {url}")


if __name__ == "__main__":
    cli()
