import logging
import sys

SUBPROCESS_LOGGER_PREFIX = "proc."


class MainFormatter(logging.Formatter):
    """A custom formatter to handle regular logs and raw subprocess output."""

    def format(self, record):
        # Child process output is already a complete line, print it untouched.
        if record.name.startswith(SUBPROCESS_LOGGER_PREFIX):
            return record.getMessage()

        # Temporarily change the format string for the superclass call.
        original_format = self._style._fmt
        self._style._fmt = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'
        formatted_message = super().format(record)
        self._style._fmt = original_format
        return formatted_message


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the application.
    Clears any previously configured handlers to prevent duplication and
    installs a single console handler.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)
