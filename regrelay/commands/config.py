import click
from regrelay.config import load_config, get_config_path, get_default_config, save_config
from regrelay.exit_codes import ConfigError
import json
import sys


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("generate")
def generate_config():
    """Write a default configuration file if none exists."""
    config_path = get_config_path()
    example = get_default_config()
    if config_path.exists():
        click.echo(f"Configuration already exists at {config_path}. Default configuration:\n{json.dumps(example, indent=2)}")
        return
    written = save_config(example)
    click.echo(f"Configuration written to {written}:\n{json.dumps(example, indent=2)}")


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
def show_config(pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path())}))
        return

    try:
        config = load_config(strict=True)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)

    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))
