"""Allow ``python -m timesheet_reshape``."""

from timesheet_reshape import cli

cli.app()
