import click
import json
import sys

from ..config import load_config, configure_logging
from ..exit_codes import ToolUnavailableError
from ..services import create_relay
from ..services.skopeo_relay import RELAY_ID


@click.command('prepare')
@click.option('--binary', help='skopeo binary to check')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def prepare_handler(binary, output_json, debug):
    """Check that skopeo can be executed and print its version."""
    config = load_config()
    configure_logging(config, debug=debug)
    if binary:
        config.setdefault('relay', {})['binary'] = binary

    relay = create_relay(RELAY_ID, config)
    try:
        banner = relay.prepare()
    except ToolUnavailableError as e:
        if output_json:
            print(json.dumps({'ready': False, 'error': str(e)}))
        else:
            print(f"Error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)
    finally:
        relay.dispose()

    if output_json:
        print(json.dumps({'ready': True, 'relay': RELAY_ID, 'version': banner}))
    else:
        click.echo(banner)
