import logging
import sys

from rich.console import Console
from rich.markup import escape

from . import daemon
from .config import parse_args
from .constants import APP_NAME, EXIT_FAILURE
from .errors import ConfigurationError, DscdError

logger = logging.getLogger(APP_NAME)
err_console = Console(stderr=True)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the dscd CLI.

    Problems found before the log is open go to stderr; everything after
    that is logged. Any fatal error ends the process with its exit status.

    Args:
        argv (list[str] | None): Arguments without the program name.
                                 Defaults to sys.argv[1:].
    """
    try:
        config = parse_args(argv)
    except ConfigurationError as e:
        err_console.print(f"[bold red]FATAL:[/bold red] {escape(str(e))}")
        sys.exit(e.exit_code)

    try:
        daemon.setup_logging(config.log_file)
    except OSError as e:
        err_console.print(
            f"[bold red]FATAL:[/bold red] Cannot open log file "
            f"{escape(str(config.log_file))}: {escape(str(e))}"
        )
        sys.exit(EXIT_FAILURE)

    try:
        daemon.run(config)
    except DscdError as e:
        logger.error(f"ERROR: {e}")
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
