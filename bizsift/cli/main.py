"""
Main CLI entry point for the Local Business Website Enrichment tool.
"""

import click

from bizsift import __version__
from bizsift.cli.commands import enrich, retry, lookup, serve, config_commands


@click.group()
@click.version_option(version=__version__, message='bizsift v%(version)s')
@click.option('--config', 'config_path', default=None, type=click.Path(),
              help='Path to YAML configuration (default: config/config.yaml)')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx: click.Context, config_path, verbose):
    """bizsift - Find official websites for local businesses."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['verbose'] = verbose


main.add_command(enrich)
main.add_command(retry)
main.add_command(lookup)
main.add_command(serve)
main.add_command(config_commands)


if __name__ == '__main__':
    main()
