"""Rendering of inventory results as tables, JSON and YAML."""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence, Tuple
import json

import yaml
from rich.console import Console
from rich.table import Table

from .types import CollectionWarning, InventoryResult, Resource

STANDARD_WIDTHS = (20, 15, 20, 15, 12, 40)
WIDE_WIDTHS = (30, 25, 25, 15, 15, 50)
PROVIDER_WIDTH = 15
MAX_TABLE_TAGS = 3

# Column caps when sizing from data
OPTIMAL_WIDTH_LIMITS = (50, 40, 30, 20, 15, 80)


@dataclass
class TableOptions:
    wide: bool = False
    no_truncate: bool = False
    no_header: bool = False
    max_width: int = 0


def truncate(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[:width - 3] + '...'


def format_tags(tags: Dict[str, str], limit: int = MAX_TABLE_TAGS) -> str:
    """Render tags as 'k=v, k=v', capped at limit with '...' when more exist (limit 0 for all)."""
    items = sorted(tags.items())
    shown = items if not limit else items[:limit]
    text = ', '.join(f'{key}={value}' for key, value in shown)
    if limit and len(items) > limit:
        text += '...'
    return text


def optimal_widths(resources: Sequence[Resource]) -> Tuple[int, int, int, int, int, int]:
    widths = [10, 10, 10, 10, 10, 10]
    for resource in resources:
        values = (
            resource.id, resource.name, resource.kind,
            resource.region, resource.status.state, format_tags(resource.tags, limit=0),
        )
        widths = [max(w, len(v or '')) for w, v in zip(widths, values)]
    return tuple(min(w + 2, cap) for w, cap in zip(widths, OPTIMAL_WIDTH_LIMITS))


def column_widths(resources: Sequence[Resource], options: TableOptions) -> Tuple[int, int, int, int, int, int]:
    """
    Choose id/name/type/region/status/tags widths.

    max_width scales the id, name, type and tags columns down proportionally.
    """
    if options.no_truncate:
        widths = list(optimal_widths(resources))
    elif options.wide:
        widths = list(WIDE_WIDTHS)
    else:
        widths = list(STANDARD_WIDTHS)

    if options.max_width > 0:
        total = sum(widths) + PROVIDER_WIDTH + 20
        if total > options.max_width:
            scale = options.max_width / total
            for index in (0, 1, 2, 5):
                widths[index] = max(1, int(widths[index] * scale))

    return tuple(widths)


def build_table(resources: Sequence[Resource], options: TableOptions) -> Table:
    """Build a rich Table of resources."""
    id_w, name_w, type_w, region_w, status_w, tags_w = column_widths(resources, options)

    table = Table(show_header=not options.no_header, header_style="bold magenta", box=None, pad_edge=False)
    table.add_column("ID", style="cyan", no_wrap=True, min_width=id_w)
    table.add_column("NAME", no_wrap=True, min_width=name_w)
    table.add_column("TYPE", no_wrap=True, min_width=type_w)
    table.add_column("PROVIDER", no_wrap=True, min_width=PROVIDER_WIDTH)
    table.add_column("REGION", no_wrap=True, min_width=region_w)
    table.add_column("STATUS", style="green", no_wrap=True, min_width=status_w)
    table.add_column("TAGS", no_wrap=True)

    for resource in resources:
        tags = format_tags(resource.tags, limit=0 if options.no_truncate else MAX_TABLE_TAGS)
        row = [resource.id, resource.name, resource.kind, tags]
        if not options.no_truncate:
            row = [
                truncate(resource.id, id_w),
                truncate(resource.name, name_w),
                truncate(resource.kind, type_w),
                truncate(tags, tags_w),
            ]
        table.add_row(
            row[0], row[1], row[2],
            resource.provider,
            resource.region,
            resource.status.state,
            row[3],
        )

    return table


def _document(resources: Sequence[Resource]) -> Dict[str, Any]:
    return {
        'resources': [resource.to_dict() for resource in resources],
        'total': len(resources),
        'timestamp': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ'),
    }


def render_json(resources: Sequence[Resource]) -> str:
    return json.dumps(_document(resources), indent=2, default=str)


def render_yaml(resources: Sequence[Resource]) -> str:
    return yaml.safe_dump(_document(resources), default_flow_style=False, sort_keys=False)


def build_summary(result: InventoryResult) -> Table:
    """Summary table of resource counts by kind."""
    table = Table(title="Inventory Summary", show_header=True, header_style="bold magenta")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="green")

    counts = result.counts_by_kind()
    for kind, count in counts.items():
        table.add_row(kind, str(count))

    table.add_section()
    table.add_row("TOTAL", str(len(result.resources)), style="bold")
    return table


def print_warnings(console: Console, warnings: List[CollectionWarning]) -> None:
    if not warnings:
        return
    console.print(f"\n[yellow]{len(warnings)} warning(s) during collection:[/yellow]")
    for warning in warnings:
        console.print(f"  - [{warning.category}] {warning}", markup=False, highlight=False)


def print_result(console: Console, result: InventoryResult, output_format: str, options: TableOptions) -> None:
    """Write resources to the console in the requested format."""
    if output_format == 'json':
        console.out(render_json(result.resources), highlight=False)
    elif output_format == 'yaml':
        console.out(render_yaml(result.resources), highlight=False)
    else:
        console.print(build_table(result.resources, options))
        console.print(f"\nTotal resources: {len(result.resources)}")
        if not options.no_truncate and not options.wide:
            console.print("\n[dim]Tip: use --wide or --no-truncate for better readability[/dim]")
