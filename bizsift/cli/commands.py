"""
CLI commands for the Local Business Website Enrichment tool.
"""

import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

import click
import yaml
from tqdm import tqdm

from bizsift.core.config import Config, DEFAULT_CONFIG
from bizsift.core.exceptions import BizSiftError
from bizsift.core.models import EnrichedBusiness, EnrichmentProgress, EnrichmentStatus
from bizsift.csv_processor import BusinessReader, EnrichedWriter
from bizsift.enrichment.factory import build_enricher, build_handler
from bizsift.server.app import create_app
from bizsift.utils.logging_config import setup_logging


def _load_config(ctx: click.Context) -> Config:
    config_path = ctx.obj.get('config_path') if ctx.obj else None
    try:
        config = Config(config_path)
        config.validate()
    except BizSiftError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(1)
    setup_logging(config.logging_config, verbose=ctx.obj.get('verbose', False) if ctx.obj else False)
    return config


def _check_output(output: str) -> None:
    output_path = Path(output)
    if output_path.suffix.lower() not in ('.csv', '.json'):
        click.echo(f"❌ Error: Output file must be CSV or JSON: {output}", err=True)
        sys.exit(1)
    if output_path.exists():
        if not click.confirm(f"Output file {output} exists. Overwrite?", default=False):
            click.echo("Operation cancelled by user.")
            sys.exit(0)


class _CancelOnInterrupt:
    """Turn the first Ctrl-C into a cancel request honoured between batches."""

    def __init__(self):
        self.event = threading.Event()
        self._previous = None

    def _handle(self, signum, frame):
        if self.event.is_set():
            raise KeyboardInterrupt
        self.event.set()
        click.echo("\n⚠️  Cancelling after the current batch (Ctrl-C again to abort)...", err=True)

    def __enter__(self):
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGINT, self._handle)
        return self.event

    def __exit__(self, *exc):
        if self._previous is not None:
            signal.signal(signal.SIGINT, self._previous)
        return False


def _run_with_progress(total: int, run) -> List[EnrichedBusiness]:
    """Drive ``run(on_progress, cancel_event)`` behind a tqdm progress bar."""
    with tqdm(total=total, desc="Enriching", unit="business") as progress_bar:
        def on_progress(progress: EnrichmentProgress) -> None:
            progress_bar.set_postfix(found=progress.found, missing=progress.not_found,
                                     errors=progress.errors)
            progress_bar.set_description(f"Enriching {progress.current_business}"[:40])
            progress_bar.update(progress.completed - progress_bar.n)

        with _CancelOnInterrupt() as cancel_event:
            return run(on_progress, cancel_event)


def _summarize(results: List[EnrichedBusiness]) -> None:
    counts = {status: 0 for status in EnrichmentStatus}
    for item in results:
        counts[item.website_status] += 1

    if counts[EnrichmentStatus.PENDING] == 0 and counts[EnrichmentStatus.ERROR] == 0:
        status_msg = click.style("✅ SUCCESS", fg="green", bold=True)
    else:
        status_msg = click.style("⚠️  PARTIAL", fg="yellow", bold=True)

    click.echo(
        f"{status_msg}: {counts[EnrichmentStatus.FOUND]} found, "
        f"{counts[EnrichmentStatus.NOT_FOUND]} not found, "
        f"{counts[EnrichmentStatus.ERROR]} error(s), "
        f"{counts[EnrichmentStatus.PENDING]} pending "
        f"out of {len(results)} businesses"
    )


@click.command()
@click.option('--input', '-i', 'input_path', required=True, type=click.Path(exists=True),
              help='CSV or JSON file with business records')
@click.option('--output', '-o', required=True, type=click.Path(),
              help='CSV or JSON file for enriched records')
@click.option('--batch-size', default=None, type=click.IntRange(min=1),
              help='Businesses looked up concurrently per batch')
@click.option('--delay', default=None, type=click.FloatRange(min=0),
              help='Seconds to wait between batches')
@click.option('--remote', default=None,
              help='URL of a running enrichment service to use instead of searching locally')
@click.pass_context
def enrich(ctx: click.Context, input_path: str, output: str, batch_size: Optional[int],
           delay: Optional[float], remote: Optional[str]):
    """Find websites for businesses in a CSV or JSON file."""
    config = _load_config(ctx)
    _check_output(output)

    try:
        businesses = BusinessReader(input_path).read_businesses()
    except (BizSiftError, FileNotFoundError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    if not businesses:
        click.echo("No businesses to enrich.")
        return

    enricher = build_enricher(config, service_url=remote)
    if batch_size:
        enricher.batch_size = batch_size

    results = _run_with_progress(
        len(businesses),
        lambda on_progress, cancel_event: enricher.enrich(
            businesses, on_progress=on_progress, inter_batch_delay=delay, cancel_event=cancel_event
        ),
    )

    EnrichedWriter(output).write(results)
    _summarize(results)


@click.command()
@click.option('--input', '-i', 'input_path', required=True, type=click.Path(exists=True),
              help='Output file of a previous enrichment run')
@click.option('--output', '-o', required=True, type=click.Path(),
              help='CSV or JSON file for the merged records')
@click.option('--threshold', default=None, type=click.IntRange(0, 100),
              help='Retry found websites below this confidence')
@click.option('--delay', default=None, type=click.FloatRange(min=0),
              help='Seconds to wait between batches')
@click.option('--remote', default=None,
              help='URL of a running enrichment service to use instead of searching locally')
@click.pass_context
def retry(ctx: click.Context, input_path: str, output: str, threshold: Optional[int],
          delay: Optional[float], remote: Optional[str]):
    """Retry errors, misses and low-confidence results of a previous run."""
    config = _load_config(ctx)
    _check_output(output)

    if threshold is None:
        threshold = int(config.get('enrichment.retry_threshold', 30))

    try:
        previous = BusinessReader(input_path).read_enriched()
    except (BizSiftError, FileNotFoundError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    to_retry = [item for item in previous if item.needs_retry(threshold)]
    if not to_retry:
        click.echo("No businesses need retry. All enrichments were successful!")
        return

    click.echo(
        f"Retrying {len(to_retry)} businesses "
        f"(errors: {sum(i.website_status == EnrichmentStatus.ERROR for i in to_retry)}, "
        f"not found: {sum(i.website_status == EnrichmentStatus.NOT_FOUND for i in to_retry)}, "
        f"low confidence: {sum(i.website_status == EnrichmentStatus.FOUND for i in to_retry)})"
    )

    enricher = build_enricher(config, service_url=remote)
    results = _run_with_progress(
        len(to_retry),
        lambda on_progress, cancel_event: enricher.retry_failed(
            previous, on_progress=on_progress, threshold=threshold,
            inter_batch_delay=delay, cancel_event=cancel_event
        ),
    )

    EnrichedWriter(output).write(results)
    _summarize(results)


@click.command()
@click.argument('name')
@click.argument('location')
@click.option('--type', 'business_type', default=None, help='Business category')
@click.pass_context
def lookup(ctx: click.Context, name: str, location: str, business_type: Optional[str]):
    """Look up the website of a single business."""
    config = _load_config(ctx)
    result = build_handler(config).lookup(name, location, business_type)

    if result.error:
        click.echo(f"❌ Lookup failed: {result.error}", err=True)
        sys.exit(1)
    if result.found:
        click.echo(f"{result.url} (confidence: {result.confidence})")
    else:
        click.echo("Not found (confidence: 0)")


@click.command()
@click.option('--host', default=None, help='Interface to bind')
@click.option('--port', default=None, type=click.IntRange(1, 65535), help='Port to listen on')
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]):
    """Run the enrichment HTTP service."""
    config = _load_config(ctx)
    app = create_app(build_handler(config))
    app.run(
        host=host or config.get('server.host', '127.0.0.1'),
        port=port or int(config.get('server.port', 3001)),
        threaded=True,
    )


@click.group('config')
def config_commands():
    """Configuration management commands."""
    pass


@config_commands.command('show')
@click.pass_context
def config_show(ctx: click.Context):
    """Show current configuration."""
    config = _load_config(ctx)
    click.echo("Current Configuration:")
    click.echo(yaml.dump(config.get_all(), default_flow_style=False, sort_keys=False))


@config_commands.command('validate')
@click.pass_context
def config_validate(ctx: click.Context):
    """Validate configuration file."""
    config_path = ctx.obj.get('config_path') if ctx.obj else None
    try:
        Config(config_path).validate()
    except BizSiftError as e:
        click.echo(f"❌ Configuration validation failed: {e}", err=True)
        sys.exit(1)
    click.echo("✅ Configuration is valid")


@config_commands.command('example')
def config_example():
    """Show example configuration."""
    click.echo("Example Configuration:")
    click.echo(yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False))
    click.echo("\nTo use this configuration:")
    click.echo("1. Save to config/config.yaml")
    click.echo("2. Adjust parameters as needed")
