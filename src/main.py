"""Main entry point for the terminal sprint planner."""
from pathlib import Path
from typing import Optional

import click

from cli import CLI
from config import alt_screen_enabled, data_file, setup_logging
from errors import InvalidArgumentError
from sprints import parse_sprint_id
from storage import JsonFileStore, TaskRepository

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--data-file', 'data_file_opt', type=click.Path(dir_okay=False, path_type=Path), default=None,
              help='JSON file holding the task collection (default: $PLANNER_DATA_FILE or data/planner.json).')
@click.option('--sprint', 'sprint_ref', default=None, metavar='Week-N-YYYY',
              help='Sprint to open (default: the current week).')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None,
              help='Logging level (default: $PLANNER_LOG_LEVEL or WARNING).')
@click.option('--alt-screen/--no-alt-screen', default=None,
              help='Draw the board on the terminal alternate screen.')
def main(data_file_opt: Optional[Path] = None, sprint_ref: Optional[str] = None,
         log_level: Optional[str] = None, alt_screen: Optional[bool] = None) -> None:
    """Weekly sprint board with recurring tasks."""
    sprint = None
    if sprint_ref:
        try:
            sprint = parse_sprint_id(sprint_ref)
        except InvalidArgumentError as exc:
            raise click.BadParameter(str(exc), param_hint='--sprint') from exc
    setup_logging(log_level)
    repo = TaskRepository(JsonFileStore(data_file_opt or data_file()))
    if alt_screen is None:
        alt_screen = alt_screen_enabled()
    CLI(repo, sprint=sprint, alt_screen=alt_screen).run()


if __name__ == "__main__":
    main()
