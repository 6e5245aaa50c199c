"""carepay CLI - Staff records and SmartHR sync for care-service offices."""

import click

from carepay import __version__

from .settings_commands import settings as settings_group
from .smarthr_commands import smarthr as smarthr_group
from .sync_commands import sync as sync_group
from .salary_commands import salary as salary_group
from .staff_commands import staff as staff_group


@click.group()
@click.version_option(version=__version__, prog_name="carepay")
def cli():
    """carepay - Staff records and SmartHR sync for care-service offices.

    Configuration is loaded from (in order):

    \b
    1. CAREPAY_CONFIG_PATH environment variable
    2. settings.json 'profile' key
    3. ~/.config/carepay/profile.yaml (XDG default)

    Run 'carepay smarthr show' to see the SmartHR connection status.
    """
    pass


cli.add_command(settings_group)
cli.add_command(smarthr_group)
cli.add_command(sync_group)
cli.add_command(salary_group)
cli.add_command(staff_group)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
