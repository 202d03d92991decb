#!/usr/bin/env python3

import click

from regrelay.commands.config import config_cmd
from regrelay.commands.prepare import prepare_handler
from regrelay.commands.sync import sync_handler


@click.group()
@click.version_option(package_name='regrelay')
def cli():
    """regrelay - Mirror container image tags between registries with skopeo.

    Drives skopeo once per tag, keeps going when a single tag fails,
    and reports which tags made it.
    """
    pass


cli.add_command(prepare_handler, name='prepare')
cli.add_command(sync_handler, name='sync')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
