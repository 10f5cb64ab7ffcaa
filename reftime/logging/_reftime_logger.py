import logging


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[94m",  # Blue
        "INFO": "\033[92m",  # Green
        "WARNING": "\033[93m",  # Yellow
        "ERROR": "\033[91m",  # Red
        "CRITICAL": "\033[95m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record):
        # Colour a copy so other handlers still see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


REFTIME_LOGGER = logging.getLogger("reftime")
REFTIME_LOGGER.setLevel(logging.INFO)

handler = logging.StreamHandler()
log_format = "%(asctime)s %(levelname)s %(message)s"
date_format = "%Y-%m-%d %H:%M:%S"
formatter = ColoredFormatter(fmt=log_format, datefmt=date_format)
handler.setFormatter(formatter)
REFTIME_LOGGER.handlers.clear()
REFTIME_LOGGER.addHandler(handler)
# Records are printed by the handler above, not again by the root logger
REFTIME_LOGGER.propagate = False


def set_log_level(level: str) -> None:
    """Set the package log level from a name such as ``"DEBUG"``."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    REFTIME_LOGGER.setLevel(numeric)
