"""
Flask CLI commands
"""

from .commands import school_cli


def register_cli(app):
    """Attach the ``school`` command group to the app's CLI."""
    app.cli.add_command(school_cli)
