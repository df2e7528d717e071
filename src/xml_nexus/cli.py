"""Command-line interface for xml-nexus."""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Optional, Tuple
from rich.console import Console
from rich.table import Table
from rich.tree import Tree
from rich.progress import Progress, SpinnerColumn, TextColumn

from xml_nexus.config import Config, load_config
from xml_nexus.discovery import SitemapDiscovery
from xml_nexus.exceptions import ScanError
from xml_nexus.fetcher import Fetcher
from xml_nexus.metadata import MetadataFetcher
from xml_nexus.models import (
    ScanResult, SitemapNode, NodeKind, OutputFormat,
    NodeEvent, InfoEvent, ErrorEvent, CompleteEvent
)
from xml_nexus.scanner import SitemapScanner
from xml_nexus.stream import encode_event, stream_events, write_ndjson
from xml_nexus.utils import setup_logging, normalize_site_key, normalize_target_url, format_duration

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog='xml-nexus',
        description='Discover, fetch and map XML sitemap hierarchies',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--version',
        action='version',
        version='%(prog)s 0.1.0'
    )

    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration file (default: config.py in current dir)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Scan command
    scan_parser = subparsers.add_parser(
        'scan',
        help='Discover and scan the sitemaps of a site'
    )
    scan_parser.add_argument(
        'url',
        type=str,
        help='Site address (scheme optional) or a sitemap URL with --direct'
    )
    scan_parser.add_argument(
        '--direct',
        action='store_true',
        help='Treat URL as a sitemap and skip robots.txt discovery'
    )
    _add_scan_options(scan_parser)

    # Scan-file command
    file_parser = subparsers.add_parser(
        'scan-file',
        help='Scan sitemap content from a file or stdin'
    )
    file_parser.add_argument(
        'path',
        type=str,
        help='Path to a sitemap file, or - for stdin'
    )
    file_parser.add_argument(
        '--base-url',
        type=str,
        required=True,
        help='Address the content stands for'
    )
    _add_scan_options(file_parser)

    # Discover command
    discover_parser = subparsers.add_parser(
        'discover',
        help='List the root sitemaps of a site'
    )
    discover_parser.add_argument(
        'url',
        type=str,
        help='Site address (scheme optional)'
    )

    # Metadata command
    metadata_parser = subparsers.add_parser(
        'metadata',
        help='Show SEO metadata of a single page'
    )
    metadata_parser.add_argument(
        'url',
        type=str,
        help='Page URL'
    )
    metadata_parser.add_argument(
        '-f', '--format',
        choices=['table', 'json'],
        default='table',
        help='Output format (default: table)'
    )

    # Config command
    config_parser = subparsers.add_parser(
        'config',
        help='Manage configuration settings'
    )
    config_subparsers = config_parser.add_subparsers(dest='config_action')

    config_subparsers.add_parser(
        'show',
        help='Show current configuration'
    )

    config_init_parser = config_subparsers.add_parser(
        'init',
        help='Initialize default configuration file'
    )
    config_init_parser.add_argument(
        '--path',
        type=str,
        default='./config.py',
        help='Path for configuration file (default: ./config.py)'
    )

    return parser


def _add_scan_options(parser: argparse.ArgumentParser):
    parser.add_argument(
        '-f', '--format',
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TREE.value,
        help='Output format (default: tree)'
    )
    parser.add_argument(
        '-o', '--output',
        type=str,
        help='Write json/ndjson output to this file instead of stdout'
    )
    parser.add_argument(
        '--max-depth',
        type=int,
        help='Maximum sitemap index depth'
    )
    parser.add_argument(
        '--max-urls',
        type=int,
        help='Maximum number of page URLs to collect'
    )
    parser.add_argument(
        '--max-concurrent',
        type=int,
        help='Maximum concurrent sitemap fetches'
    )
    parser.add_argument(
        '--limit',
        type=int,
        default=25,
        help='Leaves shown per sitemap in tree output (default: 25, 0 for all)'
    )


def _apply_scan_overrides(config: Config, args):
    if args.max_depth is not None:
        config.scanner_config.max_depth = args.max_depth
    if args.max_urls is not None:
        config.scanner_config.max_urls = args.max_urls
    if args.max_concurrent is not None:
        config.scanner_config.max_concurrent_fetches = args.max_concurrent


def handle_scan(args) -> int:
    """Handle the scan command."""
    config = load_config(args.config)
    _apply_scan_overrides(config, args)
    url = normalize_target_url(args.url)

    if args.direct:
        return _scan_direct(url, config, args)

    return _run_and_report(url, None, config, args)


def handle_scan_file(args) -> int:
    """Handle the scan-file command."""
    config = load_config(args.config)
    _apply_scan_overrides(config, args)

    if args.path == '-':
        payload = sys.stdin.buffer.read()
    else:
        path = Path(args.path)
        if not path.exists():
            console.print(f"[red]Error: Input file {args.path} not found[/red]")
            return 1
        payload = path.read_bytes()

    # .xml.gz files are accepted as-is; bytes keep the declared encoding
    try:
        content = Fetcher.decompress(payload, args.path)
    except ScanError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    return _run_and_report(normalize_target_url(args.base_url), content, config, args)


def _scan_direct(url: str, config: Config, args) -> int:
    """Scan a known sitemap URL without discovery."""
    async def run() -> ScanResult:
        async with SitemapScanner(config.scanner_config) as scanner:
            return await scanner.scan([url])

    start = time.time()
    with console.status(f"[cyan]Scanning {url}...[/cyan]"):
        result = asyncio.run(run())

    return _report(url, result, None, args, time.time() - start)


def _run_and_report(url: str, content: Optional[bytes], config: Config, args) -> int:
    if args.format == OutputFormat.NDJSON.value:
        return _stream_ndjson(url, content, config, args.output)

    start = time.time()
    result, error = asyncio.run(_collect(url, content, config))
    return _report(url, result, error, args, time.time() - start)


def _stream_ndjson(url: str, content: Optional[bytes], config: Config, output: Optional[str]) -> int:
    """Emit NDJSON events; exit code follows the final event."""
    failed = False

    async def lines():
        nonlocal failed
        async for event in stream_events(url, content, config):
            if isinstance(event, ErrorEvent):
                failed = True
            elif isinstance(event, CompleteEvent) and event.result.failed:
                failed = True
            yield encode_event(event)

    if output:
        count = asyncio.run(write_ndjson(lines(), output))
        console.print(f"[green]✓[/green] Wrote {count} events to {output}")
    else:
        async def echo():
            async for line in lines():
                sys.stdout.write(line)
                sys.stdout.flush()

        asyncio.run(echo())

    return 1 if failed else 0


async def _collect(url: str, content: Optional[bytes],
                   config: Config) -> Tuple[Optional[ScanResult], Optional[str]]:
    """Run a streamed scan behind a spinner, returning the final result or error."""
    result = None
    error = None
    sitemaps = urls = 0

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True
    ) as progress:
        task = progress.add_task("[green]Starting scan...", total=None)

        async for event in stream_events(url, content, config):
            if isinstance(event, InfoEvent):
                progress.update(task, description=f"[cyan]{event.message}")
            elif isinstance(event, NodeEvent):
                if event.data.kind == NodeKind.LEAF_URL:
                    urls += 1
                else:
                    sitemaps += 1
                progress.update(task, description=f"[green]{sitemaps} sitemaps, {urls} URLs...")
            elif isinstance(event, ErrorEvent):
                error = event.error
            elif isinstance(event, CompleteEvent):
                result = event.result

    return result, error


def _report(url: str, result: Optional[ScanResult], error: Optional[str], args,
            duration: float) -> int:
    """Render a scan outcome; returns the exit code."""
    if error or result is None:
        console.print(f"[red]✗[/red] {error or 'Scan ended without a result'}")
        return 1

    if args.format == OutputFormat.JSON.value:
        payload = {'site': normalize_site_key(url), 'result': result.to_wire()}
        if args.output:
            with open(args.output, 'w') as f:
                json.dump(payload, f, indent=2)
            console.print(f"[green]✓[/green] Saved result to {args.output}")
        else:
            print(json.dumps(payload, indent=2))
    elif args.format == OutputFormat.NDJSON.value:
        # Direct scans have no live events, only the final one
        line = encode_event(CompleteEvent(result=result))
        if args.output:
            with open(args.output, 'w') as f:
                f.write(line)
        else:
            sys.stdout.write(line)
    elif args.format == OutputFormat.TABLE.value:
        console.print(build_table(result))
    else:
        for node in result.nodes:
            console.print(build_tree(node, args.limit))

    _print_summary(result, duration)
    return 1 if result.failed else 0


def build_tree(node: SitemapNode, limit: int = 25, parent: Optional[Tree] = None) -> Tree:
    """Render a sitemap node and its descendants as a rich Tree."""
    label = f"[bold cyan]{node.url}[/bold cyan]" if node.is_container else node.url
    if node.last_modified:
        label += f" [dim]({node.last_modified})[/dim]"

    branch = parent.add(label) if parent is not None else Tree(label)

    children = node.children or []
    shown = 0
    for child in children:
        if not child.is_container and limit and shown >= limit:
            continue
        build_tree(child, limit, branch)
        if not child.is_container:
            shown += 1

    hidden = sum(1 for c in children if not c.is_container) - shown
    if hidden > 0:
        branch.add(f"[dim]... and {hidden} more URLs[/dim]")

    return branch


def build_table(result: ScanResult) -> Table:
    """Tabulate every discovered page URL."""
    table = Table(title="Discovered URLs")
    table.add_column("URL", style="cyan")
    table.add_column("Depth", justify="right")
    table.add_column("Last Modified", style="magenta")
    table.add_column("Change Freq")
    table.add_column("Priority", justify="right")

    for node in result.iter_nodes():
        if node.is_container:
            continue
        table.add_row(
            node.url,
            str(node.depth),
            node.last_modified or "",
            node.change_frequency or "",
            "" if node.priority is None else f"{node.priority:.1f}"
        )

    return table


def _print_summary(result: ScanResult, duration: float):
    # Summary goes to stderr so JSON on stdout stays clean
    err = Console(stderr=True)
    err.print(f"\n[bold]Scan Summary:[/bold]")
    err.print(f"  Sitemaps: [green]{result.total_sitemaps}[/green]")
    err.print(f"  URLs: [green]{result.total_urls}[/green]")
    err.print(f"  Errors: [red]{len(result.errors)}[/red]")
    err.print(f"  Duration: {format_duration(duration)}")
    for message in result.errors:
        err.print(f"  [yellow]•[/yellow] {message}")
    if result.failed:
        err.print("[red]✗ Scan failed: nothing could be read[/red]")


def handle_discover(args) -> int:
    """Handle the discover command."""
    config = load_config(args.config)

    async def run():
        async with Fetcher(config.scanner_config) as fetcher:
            discovery = SitemapDiscovery(fetcher, config.discovery_config)
            return await discovery.discover(args.url)

    with console.status(f"[cyan]Looking for sitemaps of {args.url}...[/cyan]"):
        sitemaps = asyncio.run(run())

    if not sitemaps:
        console.print("[yellow]No sitemaps found via robots.txt or heuristics.[/yellow]")
        return 1

    for sitemap_url in sitemaps:
        console.print(f"[green]✓[/green] {sitemap_url}")
    return 0


def handle_metadata(args) -> int:
    """Handle the metadata command."""
    config = load_config(args.config)

    async def run():
        async with MetadataFetcher(config.metadata_config) as fetcher:
            return await fetcher.fetch(normalize_target_url(args.url))

    try:
        metadata = asyncio.run(run())
    except ScanError as e:
        console.print(f"[red]Error fetching metadata: {e}[/red]")
        return 1

    if args.format == 'json':
        print(json.dumps(metadata.to_wire(), indent=2))
        return 0

    table = Table(title=f"Metadata for {metadata.url}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")
    for key, value in metadata.model_dump().items():
        if key != 'url':
            table.add_row(key, str(value))
    console.print(table)
    return 0


def handle_config(args) -> int:
    """Handle the config command."""
    if args.config_action == 'init':
        from xml_nexus.config import create_default_config
        create_default_config(args.path)
        console.print(f"[green]✓[/green] Created configuration file at {args.path}")
        return 0

    config = load_config(args.config)

    if args.config_action == 'show':
        console.print("[bold]Current Configuration:[/bold]")
        for key, value in config.to_dict().items():
            if isinstance(value, dict):
                console.print(f"\n[cyan]{key}:[/cyan]")
                for k, v in value.items():
                    console.print(f"  {k}: {v}")
            else:
                console.print(f"{key}: {value}")
        return 0

    console.print("[yellow]Usage: xml-nexus config {show,init}[/yellow]")
    return 1


def main():
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    setup_logging('DEBUG' if args.verbose else 'WARNING')

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == 'scan':
            return handle_scan(args)
        elif args.command == 'scan-file':
            return handle_scan_file(args)
        elif args.command == 'discover':
            return handle_discover(args)
        elif args.command == 'metadata':
            return handle_metadata(args)
        elif args.command == 'config':
            return handle_config(args)
        else:
            parser.print_help()
            return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        console.print(f"[red]Unexpected error: {str(e)}[/red]")
        if args.verbose:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
