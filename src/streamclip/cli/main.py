"""Root CLI group for streamclip."""

from __future__ import annotations

import click

from streamclip import __version__
from streamclip.models.config import DEFAULT_CONFIG_FILE, load_config


@click.group()
@click.version_option(version=__version__, prog_name="streamclip")
@click.option(
    "--config", "-c",
    default=DEFAULT_CONFIG_FILE,
    type=click.Path(dir_okay=False),
    help="Path to streamclip.yaml (environment variables override it)",
)
@click.pass_context
def cli(ctx: click.Context, config: str) -> None:
    """streamclip — live highlight clipping from the OBS replay buffer."""
    ctx.obj = load_config(config)


# Import and register subcommands
from streamclip.cli.init_cmd import init_cmd  # noqa: E402
from streamclip.cli.media_cmd import media_cmd  # noqa: E402
from streamclip.cli.offsets_cmd import offsets_cmd  # noqa: E402
from streamclip.cli.trim_cmd import trim_cmd  # noqa: E402
from streamclip.cli.events_cmd import events_cmd  # noqa: E402
from streamclip.cli.run_cmd import run_cmd  # noqa: E402

cli.add_command(init_cmd, "init")
cli.add_command(media_cmd, "media")
cli.add_command(offsets_cmd, "offsets")
cli.add_command(trim_cmd, "trim")
cli.add_command(events_cmd, "events")
cli.add_command(run_cmd, "run")
