"""Command line interface for the asset-processing pipeline."""

from __future__ import annotations

import asyncio
import importlib
import signal
from contextlib import suppress
from pathlib import Path
from typing import Dict, List, Optional

import typer

from assetflow.assets import AssetPipeline
from assetflow.assets.steps import Generator
from assetflow.config import AssetflowConfig, load_config
from assetflow.errors import ConfigurationError
from assetflow.log import configure_logging

app = typer.Typer(help="CLI for assetflow asset processing")

ConfigOption = typer.Option(None, "--config", "-c", help="Path to a YAML config file")
RootOption = typer.Option(None, "--project-root", help="Directory holding export.zip")
ConcurrencyOption = typer.Option(
    None, "--max-concurrency", help="Run up to N independent steps at once"
)
GeneratorOption = typer.Option(
    None,
    "--generator",
    "-g",
    help="Image stage generator as STAGE=module:function (repeatable)",
)


@app.callback()
def main() -> None:
    """assetflow CLI entry point."""
    pass


def _build_config(
    config_path: Optional[Path],
    project_root: Optional[Path],
    max_concurrency: Optional[int],
) -> AssetflowConfig:
    config = load_config(str(config_path) if config_path else None)
    if project_root is not None:
        config.assets.project_root = project_root
    if max_concurrency is not None:
        if max_concurrency < 1:
            raise typer.BadParameter("must be at least 1", param_hint="--max-concurrency")
        config.orchestrator.max_concurrency = max_concurrency
    return config


def _load_generator(value: str) -> tuple[str, Generator]:
    """Resolve ``STAGE=module:function`` into a stage name and callable."""
    stage, sep, target = value.partition("=")
    module_name, colon, attr = target.partition(":")
    if not sep or not colon or not stage or not module_name or not attr:
        raise typer.BadParameter(
            f"expected STAGE=module:function, got '{value}'", param_hint="--generator"
        )
    try:
        module = importlib.import_module(module_name)
        return stage, getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise typer.BadParameter(
            f"cannot load '{target}': {e}", param_hint="--generator"
        ) from e


def _build_pipeline(config: AssetflowConfig, generator_specs: Optional[List[str]]) -> AssetPipeline:
    generators: Dict[str, Generator] = dict(
        _load_generator(value) for value in generator_specs or []
    )
    try:
        return AssetPipeline(config, generators=generators)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--generator") from e


async def _execute(assets: AssetPipeline) -> bool:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        # unsupported on Windows event loops and outside the main thread
        with suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, assets.cancel)
            installed.append(sig)
    try:
        return await assets.execute()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


@app.command("run")
def run(
    config: Optional[Path] = ConfigOption,
    project_root: Optional[Path] = RootOption,
    max_concurrency: Optional[int] = ConcurrencyOption,
    generator: Optional[List[str]] = GeneratorOption,
) -> None:
    """
    Process the export bundle into web-ready assets.

    Steps run in dependency order with retries. Ctrl-C stops scheduling new
    steps and lets the running one finish.

    Example:
        assetflow run --project-root ./game-data
        assetflow run -g generate-icons=mytools.icons:generate
    """
    cfg = _build_config(config, project_root, max_concurrency)
    configure_logging(cfg.log_level)
    assets = _build_pipeline(cfg, generator)
    try:
        success = asyncio.run(_execute(assets))
    except ConfigurationError as e:
        typer.secho(f"Invalid pipeline configuration: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"Asset processing {'completed successfully' if success else 'failed'}")
    if not success:
        raise typer.Exit(code=1)


@app.command("check")
def check(
    config: Optional[Path] = ConfigOption,
    project_root: Optional[Path] = RootOption,
) -> None:
    """Run the pre-flight checks only."""
    cfg = _build_config(config, project_root, None)
    configure_logging(cfg.log_level)
    assets = AssetPipeline(cfg)
    if not assets.validator.preflight_check():
        typer.secho("Pre-flight checks failed", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo("Pre-flight checks passed")


@app.command("steps")
def steps(
    config: Optional[Path] = ConfigOption,
    generator: Optional[List[str]] = GeneratorOption,
) -> None:
    """List pipeline steps in execution order with their dependencies."""
    cfg = _build_config(config, None, None)
    registry = _build_pipeline(cfg, generator).pipeline.steps
    try:
        registry.validate_graph()
    except ConfigurationError as e:
        typer.secho(f"Invalid pipeline configuration: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    for name in registry.topological_order():
        step = registry.get(name)
        deps = ", ".join(step.dependencies) or "-"
        retries = step.max_retries if step.retryable else 0
        typer.echo(f"{name}\tdeps: {deps}\tretries: {retries}\t{step.description}")
