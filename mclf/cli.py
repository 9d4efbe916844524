"""
MCLF CLI -- MobiCore Loadable Format Loader
===========================================

Click-based command-line interface that loads an MCLF trustlet or driver
image into an in-memory image and shows the result.

Usage::

    # Load and display
    mclf /path/to/trustlet.tlbin

    # Skip the text header overlay
    mclf /path/to/trustlet.tlbin --no-text-header

    # Write a JSON report
    mclf /path/to/trustlet.tlbin --output report.json

    # Machine-readable output on stdout
    mclf /path/to/trustlet.tlbin --json

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from shared.config import LoaderConfig
from shared.console import LoaderConsole
from shared.logger import LoaderLogger

from mclf.core.engine import MclfEngine
from mclf.core.image import MemoryImage
from mclf.core.models import LoadOptions, LoadResult
from mclf.output.console import MclfConsoleOutput
from mclf.output.report import MclfReportGenerator


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------

@click.command("mclf")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write a JSON report to this path. A bare file name is placed in [global] output_dir.",
)
@click.option(
    "--no-text-header",
    is_flag=True,
    default=False,
    help="Do not overlay the text header at text_va + 0x80.",
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML configuration file.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable verbose/debug output.",
)
@click.option(
    "--json", "json_output",
    is_flag=True,
    default=False,
    help="Output the load result as JSON to stdout.",
)
def mclf_cli(
    path: str,
    output_path: str | None,
    no_text_header: bool,
    config_path: str | None,
    verbose: bool,
    json_output: bool,
) -> None:
    """MCLF -- MobiCore Loadable Format loader.

    Decode the MCLF header of a secure-world trustlet or driver, map its
    text, data and bss segments, mark its entry points and overlay its
    headers.

    PATH is the path to the MCLF image.

    Examples:

    \b
        mclf tlbin/07010000000000000000000000000000.tlbin
        mclf driver.drbin --no-text-header --output driver.json
    """
    console = LoaderConsole()

    try:
        config = LoaderConfig.load(config_path)
    except (FileNotFoundError, ValueError) as exc:
        console.error(f"Cannot load configuration: {exc}")
        sys.exit(1)

    settings = config.global_settings
    # stdout carries only the JSON document in --json mode
    logger = LoaderLogger(
        "mclf.cli",
        log_level="DEBUG" if verbose else settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
        console_output=verbose or not json_output,
    )

    options = LoadOptions.from_config(config.mclf)
    if no_text_header:
        options = options.model_copy(update={"text_header_overlay": False})

    engine = MclfEngine(config=config, logger=logger)
    image = MemoryImage()

    try:
        run = engine.load_file(path, image=image, options=options)
    except KeyboardInterrupt:
        console.warning("Load interrupted by user.")
        sys.exit(130)

    if json_output:
        click.echo(json.dumps({"run": run.model_dump(mode="json")}, indent=2, default=str))
        sys.exit(0 if run.success else 1)

    raw = run.metadata.get("load")
    if raw:
        MclfConsoleOutput(console=console).display(
            LoadResult.model_validate(raw), image
        )

    if run.success:
        console.success(run.summary)
    else:
        console.error(run.summary)

    if run.duration_seconds is not None:
        console.info(f"Load Duration: {run.duration_seconds:.3f}s")

    if output_path:
        report_path = MclfReportGenerator().generate_json(
            run, _report_path(output_path, settings.output_dir)
        )
        console.success(f"JSON report saved: {report_path}")

    if not run.success:
        sys.exit(1)


def _report_path(output_path: str, output_dir: str) -> Path:
    """Resolve a bare report file name against the configured output directory."""
    path = Path(output_path)
    if output_dir and path.parent == Path("."):
        return Path(output_dir) / path
    return path


# ---------------------------------------------------------------------------
# Module entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Entry point for the ``mclf`` console script."""
    mclf_cli()


if __name__ == "__main__":
    main()
