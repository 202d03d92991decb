"""
Sync command for regrelay.

Copies the tags of one repository from a source registry to a target
registry with skopeo, one tag at a time.
"""

import click
import json
import re
import sys
from typing import Optional

from ..config import load_config, configure_logging
from ..domain.sync import SyncOptions, SyncResult, TagSet
from ..exit_codes import CommandError, PartialFailureError
from ..infra.auth import encode_json_auth
from ..services import create_relay
from ..services.skopeo_relay import RELAY_ID


def _auth_blob(blob: Optional[str], creds: Optional[str]) -> str:
    """Prefer an explicit user:password over an encoded blob."""
    if creds:
        user, _, password = creds.partition(':')
        return encode_json_auth(user, password)
    return blob or ""


@click.command('sync')
@click.argument('source')
@click.argument('target')
@click.option('--tag', '-t', 'tags', multiple=True,
              help='Tag to sync; repeatable. "regex:<re>" filters the source tag list. '
                   'Without plain tags, all source tags are synced.')
@click.option('--platform', default='', help='"all" or os/arch[/variant] (default: skopeo default)')
@click.option('--src-skip-tls-verify', is_flag=True, help='Do not verify the source registry TLS certificate')
@click.option('--dest-skip-tls-verify', is_flag=True, help='Do not verify the target registry TLS certificate')
@click.option('--src-auth', envvar='REGRELAY_SRC_AUTH', help='Base64 JSON credentials for the source')
@click.option('--dest-auth', envvar='REGRELAY_DEST_AUTH', help='Base64 JSON credentials for the target')
@click.option('--src-creds', help='Source credentials as user:password')
@click.option('--dest-creds', help='Target credentials as user:password')
# Relay settings (override config file)
@click.option('--mode', help='skopeo sub-operation: copy or sync')
@click.option('--binary', help='skopeo binary to run')
@click.option('--certs-dir', help='Root of per-registry certificate directories')
@click.option('--no-prepare', is_flag=True, help='Skip the skopeo version check')
# Output options
@click.option('--verbose', '-v', is_flag=True, help="Show skopeo's output")
@click.option('--json', 'output_json', is_flag=True, help='Output per-tag results as JSONL')
@click.option('--pretty', is_flag=True, help='Display results with rich formatting')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def sync_handler(
    source: str,
    target: str,
    tags: tuple,
    platform: str,
    src_skip_tls_verify: bool,
    dest_skip_tls_verify: bool,
    src_auth: Optional[str],
    dest_auth: Optional[str],
    src_creds: Optional[str],
    dest_creds: Optional[str],
    mode: Optional[str],
    binary: Optional[str],
    certs_dir: Optional[str],
    no_prepare: bool,
    verbose: bool,
    output_json: bool,
    pretty: bool,
    debug: bool,
):
    """
    Sync image tags from SOURCE to TARGET.

    SOURCE and TARGET are repository references without a tag.

    Examples:

        # Copy two tags
        regrelay sync reg.example.com/ns/img mirror.example.com/ns/img -t v1 -t v2

        # Copy every tag starting with v1.
        regrelay sync reg.example.com/ns/img mirror.example.com/ns/img -t 'regex:^v1\\.'

        # Copy all platforms of a multi-arch image
        regrelay sync docker.io/library/alpine mirror.example.com/alpine -t 3.20 --platform all

        # Pin a single platform
        regrelay sync docker.io/library/alpine mirror.example.com/alpine -t 3.20 --platform linux/arm64/v8
    """
    config = load_config()
    configure_logging(config, debug=debug)

    relay_section = dict(config.get('relay', {}))
    for key, value in (('mode', mode), ('binary', binary), ('certs_dir', certs_dir)):
        if value:
            relay_section[key] = value
    config['relay'] = relay_section

    try:
        tag_set = TagSet.from_list(tags)
    except re.error as e:
        raise click.BadParameter(f"invalid tag filter: {e}", param_hint='--tag')

    options = SyncOptions(
        source_ref=source,
        target_ref=target,
        tags=tag_set,
        platform=platform,
        source_skip_tls_verify=src_skip_tls_verify,
        target_skip_tls_verify=dest_skip_tls_verify,
        source_auth=_auth_blob(src_auth, src_creds),
        target_auth=_auth_blob(dest_auth, dest_creds),
        verbose=verbose,
    )

    # Keep stdout clean for JSONL
    out = sys.stderr if output_json else sys.stdout

    try:
        with create_relay(RELAY_ID, config, out=out) as relay:
            if not no_prepare:
                relay.prepare()
            result = relay.sync(options)
    except PartialFailureError as e:
        _report(e.result, output_json, pretty)
        _fail(e, output_json, pretty)
    except CommandError as e:
        _fail(e, output_json, pretty)

    _report(result, output_json, pretty)


def _fail(error: CommandError, output_json: bool, pretty: bool):
    if output_json:
        print(json.dumps({'error': str(error), 'type': type(error).__name__}), file=sys.stderr)
    elif pretty:
        from rich.console import Console
        Console(stderr=True).print(f"[red]Error:[/red] {error}")
    else:
        print(f"Error: {error}", file=sys.stderr)
    sys.exit(error.exit_code)


def _report(result: Optional[SyncResult], output_json: bool, pretty: bool):
    if result is None:
        return
    if output_json:
        _report_json(result)
    elif pretty:
        _report_pretty(result)
    else:
        _report_simple(result)


def _report_simple(result: SyncResult):
    """Simple text output for sync."""
    print(f"\nSync complete: {result.source_ref} -> {result.target_ref}", file=sys.stderr)
    print(f"  Tags synced: {result.succeeded}", file=sys.stderr)
    if result.failed:
        print(f"  Tags failed: {result.failed}", file=sys.stderr)
        for outcome in result.outcomes:
            if outcome.error:
                print(f"  - {outcome.tag}: {outcome.error}", file=sys.stderr)


def _report_json(result: SyncResult):
    """JSONL output for sync."""
    for outcome in result.outcomes:
        print(json.dumps(outcome.to_dict()), flush=True)
    print(json.dumps(result.to_dict()), flush=True)


def _report_pretty(result: SyncResult):
    """Rich formatted output for sync."""
    from rich.console import Console
    from rich.table import Table

    console = Console()

    table = Table(title=f"Sync {result.source_ref} -> {result.target_ref}", show_header=True)
    table.add_column("Tag", style="cyan")
    table.add_column("Status")
    table.add_column("Error", style="red")

    for outcome in result.outcomes:
        if outcome.error:
            status = "[red]failed[/red]"
        else:
            status = "[green]synced[/green]"
        table.add_row(outcome.tag, status, outcome.error or "")

    console.print(table)

    if result.success:
        console.print(f"\n[bold green]✓[/bold green] {result.succeeded} tags synced")
    else:
        console.print(f"\n[red]{result.failed} of {len(result.outcomes)} tags failed[/red]")
