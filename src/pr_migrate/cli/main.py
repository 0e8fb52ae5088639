"""Main CLI entry point for pr-migrate."""

import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..api.client import GitHubClientFactory
from ..api.exceptions import GitHubAPIError
from ..config.config import Config
from ..exceptions import EmptyChangeError, MigrationError
from ..git.reader import PathFilter
from ..models.revision import Revision
from ..origin.origin import GitHubPrOrigin
from ..utils.logging import setup_logging

console = Console()

EXIT_ERROR = 1
EXIT_NO_OP = 4


@click.group()
@click.version_option(version='0.1.0', prog_name='pr-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """pr-migrate - Resolve GitHub pull requests into migratable revisions."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    # Basic logging until the configuration is loaded
    log_level = 'DEBUG' if verbose else 'INFO'
    setup_logging(log_level)


@cli.command()
@click.option(
    '--output',
    '-o',
    default='config.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]pr-migrate[/bold green]\nInitializing configuration...',
            border_style='green',
        )
    )

    try:
        Config.create_template(output)

        console.print(f'[green]✓[/green] Configuration template created at: {output}')
        console.print(
            f'[yellow]Please edit {output} with your GitHub repository details[/yellow]'
        )

    except OSError as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(EXIT_ERROR)


@cli.command()
@click.argument('reference', required=False)
@click.option('--force', is_flag=True, help='Skip eligibility checks')
@click.option(
    '--required-label',
    'required_labels',
    multiple=True,
    help='Required label for this run (repeatable, replaces configured labels)',
)
@click.option(
    '--retryable-label',
    'retryable_labels',
    multiple=True,
    help='Required label that may still be added (repeatable)',
)
@click.pass_context
def resolve(
    ctx: click.Context,
    reference: Optional[str],
    force: bool,
    required_labels: Tuple[str, ...],
    retryable_labels: Tuple[str, ...],
) -> None:
    """Resolve REFERENCE (PR number, PR URL, refs/pull/N/head or SHA)."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        origin = GitHubPrOrigin.from_config(
            config,
            force_import=True if force else None,
            required_labels=required_labels or None,
            retryable_labels=retryable_labels or None,
        )
        revision = origin.resolve(reference)
        _display_revision(revision)

    except EmptyChangeError as e:
        console.print(f'[yellow]Skipped:[/yellow] {e}')
        sys.exit(EXIT_NO_OP)
    except (MigrationError, GitHubAPIError, ValueError, FileNotFoundError) as e:
        console.print(f'[red]✗[/red] Resolution failed: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(EXIT_ERROR)


@cli.command()
@click.option('--include', multiple=True, help='Glob of origin files (repeatable)')
@click.option('--exclude', multiple=True, help='Glob of excluded files (repeatable)')
@click.pass_context
def describe(ctx: click.Context, include: Tuple[str, ...], exclude: Tuple[str, ...]) -> None:
    """Show the configuration facts that identify this origin."""
    try:
        config = _load_config(ctx)
        _setup_logging_with_config(ctx, config)

        origin = GitHubPrOrigin.from_config(config)
        description = origin.describe(PathFilter(include or ('**',), exclude))

        table = Table(title='Origin')
        table.add_column('Key', style='cyan')
        table.add_column('Value', style='green')
        for key, values in description.items():
            table.add_row(key, '\n'.join(values))
        table.add_row('label', origin.label_name())
        console.print(table)

    except (MigrationError, ValueError, FileNotFoundError) as e:
        console.print(f'[red]✗[/red] Failed to describe origin: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(EXIT_ERROR)


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate the configuration and GitHub connectivity."""
    console.print(
        Panel.fit(
            '[bold cyan]pr-migrate[/bold cyan]\nValidating configuration...',
            border_style='cyan',
        )
    )

    try:
        config = _load_config(ctx)
        console.print('[green]✓[/green] Configuration validation completed')

        with GitHubClientFactory.create_client(config.github) as client:
            if not client.test_connection():
                console.print(f'[red]✗[/red] Cannot connect to {config.github.api_url}')
                sys.exit(EXIT_ERROR)
        console.print('[green]✓[/green] Connectivity validation passed')

    except (ValueError, FileNotFoundError) as e:
        console.print(f'[red]✗[/red] Validation failed: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(EXIT_ERROR)


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        return Config.from_file(config_path)

    default_paths = ['config.yaml', 'config.yml', '.pr-migrate.yaml']
    for path in default_paths:
        if Path(path).exists():
            return Config.from_file(path)

    try:
        return Config.from_env()
    except ValueError:
        raise FileNotFoundError(
            'No configuration found. Use --config to specify a file or run '
            '"pr-migrate init" to create one.'
        )


def _setup_logging_with_config(ctx: click.Context, config: Config) -> None:
    """Setup logging with configuration from config file."""
    log_level = 'DEBUG' if ctx.obj.get('verbose', False) else config.logging.level
    setup_logging(
        level=log_level, log_file=config.logging.file, log_format=config.logging.format
    )


def _display_revision(revision: Revision) -> None:
    console.print(f'[green]✓[/green] Resolved [bold]{revision}[/bold]')

    table = Table(title='Revision labels')
    table.add_column('Label', style='cyan')
    table.add_column('Value', style='green')
    for key, values in revision.labels:
        table.add_row(key, '\n'.join(values))
    console.print(table)


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Interrupted by user[/red]')
        sys.exit(EXIT_ERROR)


if __name__ == '__main__':
    main()
