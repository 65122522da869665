"""streamclip init — write a starter configuration file."""

from __future__ import annotations

from pathlib import Path

import click

from streamclip.models.config import DEFAULT_CONFIG_FILE, CaptureConfig
from streamclip.utils.io import write_yaml
from streamclip.utils.progress import log_error, log_success

# Never written to disk; supply them through the environment
SECRET_FIELDS = {("obs", "password"), ("stt", "api_key")}


@click.command()
@click.option(
    "--output", "-o",
    default=DEFAULT_CONFIG_FILE,
    type=click.Path(dir_okay=False),
    help="Where to write the config",
)
@click.option("--obs-url", default=None, help="obs-websocket URL, e.g. ws://127.0.0.1:4455")
@click.option("--replay-dir", default=None, help="Directory OBS writes replay files to")
@click.option("--sessions-dir", default=None, help="Directory for session logs and clips")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init_cmd(
    output: str,
    obs_url: str | None,
    replay_dir: str | None,
    sessions_dir: str | None,
    force: bool,
) -> None:
    """Write a default streamclip.yaml."""
    path = Path(output)
    if path.exists() and not force:
        log_error(f"{path} already exists (use --force to overwrite)")
        raise SystemExit(1)

    config = CaptureConfig()
    if obs_url:
        config.obs.url = obs_url
    if replay_dir:
        config.obs.replay_output_dir = replay_dir
    if sessions_dir:
        config.sessions_dir = sessions_dir

    data = config.model_dump(mode="json")
    for section, field in SECRET_FIELDS:
        data[section].pop(field, None)
    write_yaml(path, data)

    log_success(f"Config written: {path.resolve()}")
    click.echo("\nSet DEEPGRAM_API_KEY and OBS_WS_PASSWORD in the environment, then: streamclip run")
