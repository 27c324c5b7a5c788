"""Config command: change settings of the current context."""

import typer

from ..config import get_config_path, load_config, save_config


def set_command(key: str, value: str) -> None:
    config = load_config()
    config.set(key, value)
    save_config(config)
    typer.echo(
        f"✅ Updated {key} for context '{config.current_context}' in {get_config_path()}",
        err=True,
    )
