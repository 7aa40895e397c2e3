#!/usr/bin/env python3
"""Cloud resource inventory - Main entry point."""
import os
import sys
import json
import time
import argparse
from typing import Dict, List, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from cloudview.cancellation import CancellationToken
from cloudview.config import InventoryConfig, effective_config_source, get_config, write_example_config
from cloudview.errors import CloudViewError, OperationCancelledError, ResourceNotFoundError, UnsupportedResourceKindError, ValidationError
from cloudview.filters import ResourceFilters, parse_filters
from cloudview.logger import setup_logging, get_logger
from cloudview.output import TableOptions, build_summary, print_result, print_warnings
from cloudview.providers import ProviderFactory, ProviderRegistry
from cloudview.providers.base import CloudProvider
from cloudview.regions import DEFAULT_REGION
from cloudview.types import InventoryResult

logger = get_logger(__name__)
console = Console()
# Progress and diagnostics go to stderr so json/yaml output stays clean
err_console = Console(stderr=True)

EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='List cloud resources across providers, regions and services',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                   # All resources in the configured regions
  %(prog)s --region us-east-1 eu-west-1      # Only these regions
  %(prog)s --type ec2 --status running       # Running EC2 instances
  %(prog)s --tag Env=prod --output json      # Production resources as JSON
  %(prog)s --created-after 2024-01-01        # Resources created after a date
  %(prog)s --init-config cloudview.json     # Write an example config file
  %(prog)s --show-config                     # Effective configuration, secrets masked
        """
    )

    parser.add_argument(
        '--provider',
        nargs='+',
        default=['all'],
        help='Providers to query (default: all enabled providers)'
    )
    parser.add_argument(
        '--region',
        nargs='+',
        action='extend',
        help='Regions to query (default: configured regions)'
    )
    parser.add_argument(
        '--type',
        nargs='+',
        action='extend',
        help='Resource types or groups, e.g. ec2, s3, rds, iam, network'
    )
    parser.add_argument(
        '--tag',
        nargs='+',
        action='extend',
        help='Tag filters as key=value (all must match)'
    )
    parser.add_argument(
        '--status',
        nargs='+',
        action='extend',
        help='Resource states, e.g. running stopped available'
    )
    parser.add_argument(
        '--created-after',
        help='Only resources created after this date (YYYY-MM-DD or ISO-8601)'
    )
    parser.add_argument(
        '--created-before',
        help='Only resources created before this date (YYYY-MM-DD or ISO-8601)'
    )
    parser.add_argument(
        '--output', '-o',
        choices=['table', 'json', 'yaml'],
        help='Output format (default: table, or the configured format)'
    )
    parser.add_argument(
        '--no-header',
        action='store_true',
        help='Omit the table header'
    )
    parser.add_argument(
        '--wide',
        action='store_true',
        help='Use wider table columns'
    )
    parser.add_argument(
        '--max-width',
        type=int,
        default=0,
        help='Scale table columns down to fit this width (0 for no limit)'
    )
    parser.add_argument(
        '--no-truncate',
        action='store_true',
        help='Size columns to their content and show every tag'
    )
    parser.add_argument(
        '--summary',
        action='store_true',
        help='Show resource counts by type after the table'
    )
    parser.add_argument(
        '--resource-status',
        metavar='RESOURCE_ID',
        help='Look up the current status of a single resource and exit'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        help='Abort the query after this many seconds'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose logging (same as --log-level DEBUG)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: WARNING, or the configured level)'
    )
    parser.add_argument(
        '--config',
        help='Path to configuration file'
    )
    parser.add_argument(
        '--list-kinds',
        action='store_true',
        help='List supported resource types and exit'
    )
    parser.add_argument(
        '--list-regions',
        action='store_true',
        help='List supported regions and exit'
    )
    parser.add_argument(
        '--show-config',
        action='store_true',
        help='Print the effective configuration as JSON (secrets masked) and exit'
    )
    parser.add_argument(
        '--validate-config',
        action='store_true',
        help='Validate the effective configuration and exit'
    )
    parser.add_argument(
        '--config-path',
        action='store_true',
        help='Show where configuration is read from and exit'
    )
    parser.add_argument(
        '--init-config',
        metavar='PATH',
        help='Write an example configuration file to PATH and exit'
    )
    parser.add_argument(
        '--force',
        action='store_true',
        help='Let --init-config overwrite an existing file'
    )

    return parser.parse_args(argv)


def select_provider_configs(requested: List[str], configs: Dict[str, object]) -> Dict[str, object]:
    """
    Pick the provider configurations to use.

    'all' selects every configured provider; unknown names are reported and
    skipped.
    """
    if not requested or 'all' in requested:
        return dict(configs)

    selected = {}
    for name in requested:
        if name in configs:
            selected[name] = configs[name]
        else:
            err_console.print(f"[yellow]Provider '{name}' is not configured, skipping[/yellow]")
    return selected


def collect_inventory(
    token: CancellationToken,
    providers: Dict[str, CloudProvider],
    filters: ResourceFilters,
    show_progress: bool = True
) -> InventoryResult:
    """
    Query every provider and merge the results.

    A single --type term is dispatched straight to the collector that owns it.
    """
    combined = InventoryResult()
    single_kind = filters.kinds[0] if len(filters.kinds) == 1 else None

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
        disable=not show_progress,
    ) as progress:
        for name, provider in providers.items():
            task = progress.add_task(f"[cyan]Querying {provider.description}...", total=None)
            result = None
            if single_kind:
                try:
                    result = provider.get_resources_by_type(token, single_kind, filters)
                except UnsupportedResourceKindError:
                    logger.debug(f"{name} has no collector for {single_kind}")
            if result is None:
                result = provider.get_resources(token, filters)
            progress.remove_task(task)

            logger.info(f"Provider {name} returned {len(result)} resources")
            combined.resources.extend(result.resources)
            combined.warnings.extend(result.warnings)

    return combined


def show_resource_status(token: CancellationToken, providers: Dict[str, CloudProvider], resource_id: str) -> None:
    """Print the status of one resource from the first provider that knows it."""
    for name, provider in providers.items():
        try:
            status = provider.get_resource_status(token, resource_id)
        except ResourceNotFoundError:
            continue
        console.print(
            f"{resource_id} ({name}): {status.state} "
            f"(health: {status.health}, checked {status.last_checked.isoformat()})"
        )
        return
    raise ResourceNotFoundError(resource_id)


def print_supported(args: argparse.Namespace, factory: ProviderFactory) -> None:
    """Handle --list-kinds and --list-regions."""
    for name in factory.supported_providers():
        provider = factory.providers[name]()
        if args.list_kinds:
            console.print(f"[bold cyan]{name}[/bold cyan] resource types:")
            for kind in provider.list_supported_kinds():
                console.print(f"  {kind}")
        if args.list_regions:
            console.print(f"[bold cyan]{name}[/bold cyan] regions:")
            for region in provider.list_supported_regions():
                console.print(f"  {region}")


def show_config_path() -> None:
    """Handle --config-path."""
    source = effective_config_source()
    found = "found" if source['config_file'] else "not found, using defaults"
    console.print(f"Config file: {source['config_path']} ({found})")
    if source['set_env_vars']:
        console.print("Environment overrides:")
        for name in source['set_env_vars']:
            console.print(f"  {name}")
    else:
        console.print("Environment overrides: none")


def validate_configuration(config: InventoryConfig) -> None:
    """Handle --validate-config; exits with EXIT_USAGE when invalid."""
    try:
        config.validate()
    except ValidationError as e:
        err_console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(EXIT_USAGE)

    console.print("[green]✓[/green] Configuration is valid")
    for name, provider_config in config.providers.items():
        if not provider_config.enabled:
            console.print(f"  {name}: disabled")
            continue
        regions = provider_config.regions or [provider_config.region or DEFAULT_REGION]
        console.print(f"  {name}: enabled ({', '.join(regions)})")
    console.print(f"  output: {config.output_format}, logging: {config.log_level} ({config.log_format})")


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = parse_arguments(argv)

    # Set up configuration
    if args.config:
        os.environ['CLOUDVIEW_CONFIG'] = args.config

    if args.init_config:
        try:
            write_example_config(args.init_config, force=args.force)
        except ValidationError:
            err_console.print(f"[yellow]{args.init_config} already exists, use --force to overwrite[/yellow]")
            sys.exit(EXIT_USAGE)
        except OSError as e:
            err_console.print(f"[bold red]Error:[/bold red] cannot write {args.init_config}: {e}")
            sys.exit(EXIT_ERROR)
        console.print(f"[green]✓[/green] Wrote example configuration to {args.init_config}")
        return

    if args.config_path:
        show_config_path()
        return

    try:
        config = get_config()
    except (CloudViewError, ValueError) as e:
        err_console.print(f"[bold red]Configuration error:[/bold red] {e}")
        sys.exit(EXIT_USAGE)

    # Set up logging
    log_level = 'DEBUG' if args.verbose else (args.log_level or config.log_level)
    setup_logging(log_level, config.log_format)

    if args.show_config:
        console.out(json.dumps(config.to_dict(), indent=2), highlight=False)
        return

    if args.validate_config:
        validate_configuration(config)
        return

    registry = ProviderRegistry()
    factory = ProviderFactory(registry, max_workers=config.max_concurrent_collectors)

    if args.list_kinds or args.list_regions:
        print_supported(args, factory)
        return

    # Validate every filter before touching the network
    try:
        filters = parse_filters(
            regions=args.region,
            kinds=args.type,
            tags=args.tag,
            statuses=args.status,
            created_after=args.created_after,
            created_before=args.created_before,
        )
    except ValidationError as e:
        err_console.print(f"[bold red]Invalid filter:[/bold red] {e}")
        sys.exit(EXIT_USAGE)

    output_format = args.output or config.output_format
    options = TableOptions(
        wide=args.wide,
        no_truncate=args.no_truncate,
        no_header=args.no_header,
        max_width=args.max_width,
    )

    configs = select_provider_configs(args.provider, config.providers)
    token = CancellationToken(timeout=args.timeout)

    try:
        providers, errors = factory.create_enabled_providers(token, configs)
        for name, error in errors.items():
            err_console.print(f"[red]✗[/red] {name}: {error}")
        if not providers:
            err_console.print("[bold red]Error:[/bold red] no provider could be initialized")
            sys.exit(EXIT_ERROR)

        if args.resource_status:
            show_resource_status(token, providers, args.resource_status)
            return

        start_time = time.time()
        result = collect_inventory(token, providers, filters, show_progress=output_format == 'table')
        duration = time.time() - start_time
        logger.info(f"Inventory completed in {duration:.2f} seconds", extra={'duration': duration})

        print_result(console, result, output_format, options)
        if args.summary and output_format == 'table':
            console.print(build_summary(result))
        print_warnings(err_console, result.warnings)

    except KeyboardInterrupt:
        token.cancel('interrupted by user')
        err_console.print("\n[yellow]Inventory interrupted by user[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except OperationCancelledError as e:
        err_console.print(f"\n[yellow]Inventory cancelled:[/yellow] {e}")
        sys.exit(EXIT_ERROR)
    except CloudViewError as e:
        err_console.print(f"\n[bold red]Error:[/bold red] {e}")
        sys.exit(EXIT_ERROR)
    except Exception as e:
        err_console.print(f"\n[bold red]Error:[/bold red] {e}")
        logger.exception("Unhandled exception in main")
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
