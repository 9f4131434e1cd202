import sys

import click
from main import cli_main


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument('files', nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option('--out', default='.', type=click.Path(file_okay=False), help='Directory that receives the processed run folder.')
@click.option('--recover', 'asset_id', default=None, help='Asset id of an earlier run to download again.')
@click.option('--serve', is_flag=True, default=False, help='Start the FastAPI progress service instead of processing.')
@click.option('--port', default=8000, show_default=True, help='Port used with --serve.')
def main(files, out, asset_id, serve, port):
    """CLI entry point delegating to main.cli_main."""
    argv = []
    if serve:
        argv.extend(['--serve', '--port', str(port)])
    if asset_id:
        argv.extend(['--recover', asset_id])
    argv.extend(['--out', out])
    argv.extend(list(files))
    sys.exit(cli_main(argv))


if __name__ == '__main__':
    main()
