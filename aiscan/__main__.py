from aiscan.cli import cli

cli(prog_name="aiscan")
