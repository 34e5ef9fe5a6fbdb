import sys
import logging

from poolcmd.log.setup import setup_logging
import poolcmd.local.console as console

log = logging.getLogger("console")


def main() -> int:
    """The main entry point for the console application."""
    setup_logging(logging.INFO)

    args = sys.argv[1:]
    if "--verbose" in args:
        console.toggle_verbose_logging()
        args.remove("--verbose")

    if not args:
        console.print_help()
        return 0

    command, args = args[0].lower(), args[1:]
    try:
        return console.execute_command(command, args)
    except KeyboardInterrupt:
        log.warning("Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
