from packsmith.cli import cli

cli()
