import json
import os
import sys
from typing import Optional

import click

from .. import __version__
from ..config import LOG_LEVEL_ENV, load_config
from ..console import print_error, print_records, print_warning
from ..exceptions import GemLicenseSourceError
from ..logging_config import logger, set_log_level
from ..registry import create_default_registry
from ..tool_checks import log_tool_status

EXIT_ERROR = 1
EXIT_NOT_APPLICABLE = 2


def _configure_logging(verbose: bool, output_format: str) -> None:
    if verbose:
        set_log_level("DEBUG")
    elif os.getenv(LOG_LEVEL_ENV):
        set_log_level(os.environ[LOG_LEVEL_ENV])
    elif output_format == "json":
        # Keep stdout parseable
        set_log_level("ERROR")


@click.command(name="gem-license-source")
@click.argument("project_dir", default=".", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file (defaults to .licensed.yml in PROJECT_DIR).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--without",
    multiple=True,
    help="Group to exclude. Repeat for several groups. Overrides rubygems.without from the configuration.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(__version__, prog_name="gem-license-source")
def cli(
    project_dir: str,
    config_file: Optional[str],
    output_format: str,
    without: tuple[str, ...],
    verbose: bool,
) -> None:
    """List the gems PROJECT_DIR ships with, for license auditing.

    Reads the Gemfile and Gemfile.lock in PROJECT_DIR. Development and
    test gems, and gems that are part of the project itself, are left out.
    """
    _configure_logging(verbose, output_format)
    if verbose:
        log_tool_status(verbose=True)

    try:
        config = load_config(project_dir, config_file)
        if without:
            config.data.setdefault("rubygems", {})["without"] = list(without)

        registry = create_default_registry()
        sources = registry.enabled_sources(config)
        if not sources:
            checked = ", ".join(registry.registered_sources)
            print_warning(
                f"No Gemfile with a lock file found in {config.root} (sources checked: {checked})",
                title="Not applicable",
            )
            sys.exit(EXIT_NOT_APPLICABLE)

        records = [record for source in sources for record in source.dependencies()]
    except GemLicenseSourceError as e:
        logger.debug("Dependency listing failed", exc_info=True)
        print_error(str(e))
        sys.exit(EXIT_ERROR)

    if output_format == "json":
        data = [r.to_dict() for r in sorted(records, key=lambda r: (r.name, r.version))]
        click.echo(json.dumps(data, indent=2))
    else:
        print_records(records, title=f"Gems in {config.root.name}")


def main() -> None:
    """Entry point for the gem-license-source command."""
    cli()


if __name__ == "__main__":
    main()
