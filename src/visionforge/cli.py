"""
VisionForge CLI
Command-line interface for batch captioning and prompt optimization.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from .models import ProviderKind

PROVIDER_CHOICES = [kind.value for kind in ProviderKind]


def _setup_logging(verbose: bool):
    from .config import settings

    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _provider_config(provider, api_key, base_url, model):
    from .config import settings

    return settings.provider_config(
        provider=ProviderKind(provider) if provider else None,
        api_key=api_key,
        base_url=base_url,
        model_id=model,
    )


def provider_options(func):
    """Shared provider selection options."""
    func = click.option("--model", "-m", help="Model id (default: provider preset)")(func)
    func = click.option("--base-url", help="API base URL (default: provider preset)")(func)
    func = click.option("--api-key", "-k", help="API key (default: VISIONFORGE_API_KEY / API_KEY)")(func)
    func = click.option("--provider", "-p", type=click.Choice(PROVIDER_CHOICES), help="Provider")(func)
    return func


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """VisionForge - Batch image captioning for training datasets"""
    _setup_logging(verbose)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@provider_options
@click.option("--prompt", help="Captioning prompt (default: settings.default_prompt)")
@click.option("--confidence", is_flag=True, help="Request a confidence score")
@click.option("--tags/--no-tags", default=True, help="Request visual tags")
@click.option("--ocr", is_flag=True, help="Request visible text")
@click.option("--colors", is_flag=True, help="Request dominant colors")
@click.option("--category", is_flag=True, help="Request a general category")
@click.option("--reasoning", is_flag=True, help="Request the model's reasoning")
@click.option("--no-stats", is_flag=True, help="Omit the stats block from the export")
@click.option("--recursive/--no-recursive", default=True, help="Scan subdirectories")
@click.option("--jsonl", "jsonl_path", type=click.Path(exists=True), help="JSONL file whose fields are preserved in the export")
@click.option("--output", "-o", type=click.Path(), default="vision_dataset.jsonl", help="JSONL export path")
@click.option("--report", type=click.Path(), help="Write a plain-text stats report")
def run(
    paths,
    provider,
    api_key,
    base_url,
    model,
    prompt,
    confidence,
    tags,
    ocr,
    colors,
    category,
    reasoning,
    no_stats,
    recursive,
    jsonl_path,
    output,
    report,
):
    """Caption images and export a JSONL dataset."""
    from .batch import BatchOrchestrator
    from .collection import ItemCollection, UnsupportedImageError
    from .config import settings
    from .export import generate_jsonl_export, generate_stats_report, parse_jsonl
    from .models import ProcessingOptions
    from .providers import ConfigurationError
    from .stats import compute_stats

    config = _provider_config(provider, api_key, base_url, model)
    options = ProcessingOptions(
        include_confidence=confidence,
        include_tags=tags,
        include_ocr=ocr,
        include_colors=colors,
        include_category=category,
        include_reasoning=reasoning,
        include_stats=not no_stats,
    )

    collection = ItemCollection()
    for path in map(Path, paths):
        if path.is_dir():
            collection.add_directory(path, recursive=recursive)
        else:
            try:
                collection.add_path(path)
            except UnsupportedImageError as e:
                click.echo(f"⚠️  Skipping {path.name}: {e}", err=True)

    if len(collection) == 0:
        click.echo("No images found.")
        return

    if jsonl_path:
        records = parse_jsonl(Path(jsonl_path).read_text(encoding="utf-8"))
        matched = collection.attach_jsonl(records)
        click.echo(f"📄 Matched {matched}/{len(records)} JSONL records")

    click.echo("=" * 60)
    click.echo("🖼️  VisionForge Batch Captioning")
    click.echo("=" * 60)
    click.echo(f"   Provider: {config.provider.value}")
    click.echo(f"   Model:    {config.model_id}")
    click.echo(f"   Images:   {len(collection)}")
    click.echo(f"   Fields:   {', '.join(['caption'] + options.requested_keys())}")
    click.echo("=" * 60)

    def report_progress(event):
        item = collection.get(event.item_id)
        mark = "✅" if event.status == "success" else f"❌ {event.error}"
        click.echo(f"[{event.completed}/{event.total}] {item.filename[:50]} {mark}")

    orchestrator = BatchOrchestrator()
    try:
        asyncio.run(orchestrator.run(
            collection,
            prompt or settings.default_prompt,
            config,
            options,
            on_progress=report_progress,
        ))
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    stats = compute_stats(collection)

    Path(output).write_text(generate_jsonl_export(collection, options), encoding="utf-8")
    if report:
        Path(report).write_text(generate_stats_report(stats), encoding="utf-8")

    failed = len(collection.by_status("error"))
    click.echo("")
    click.echo("=" * 60)
    click.echo(f"✅ Completed: {stats.total_processed}/{len(collection)} images")
    click.echo(f"   Avg time per image: {stats.average_time_ms:.0f}ms")
    if failed:
        click.echo(f"⚠️  {failed} images failed (re-run to retry them)")
    click.echo(f"   Dataset: {output}")
    if report:
        click.echo(f"   Report:  {report}")
    click.echo("=" * 60)


@cli.command()
@click.argument("idea")
@provider_options
def optimize(idea: str, provider, api_key, base_url, model):
    """Refine an idea into a captioning prompt."""
    from .optimizer import optimize_prompt
    from .providers import AdapterError, ConfigurationError

    config = _provider_config(provider, api_key, base_url, model)

    try:
        optimized = asyncio.run(optimize_prompt(idea, config))
    except (ConfigurationError, AdapterError) as e:
        click.echo(f"❌ Optimization failed: {e}", err=True)
        sys.exit(1)

    click.echo(optimized)


@cli.command()
def providers():
    """List supported providers and their presets."""
    from .providers import PROVIDER_PRESETS

    click.echo("🔌 Providers")
    click.echo("=" * 60)
    for kind, preset in PROVIDER_PRESETS.items():
        click.echo(f"{kind.value:<10} {preset.label}")
        click.echo(f"           URL:   {preset.default_url or '-'}")
        click.echo(f"           Model: {preset.default_model or '-'}")


def main():
    cli()


if __name__ == "__main__":
    main()
