from reftime.logging._reftime_logger import REFTIME_LOGGER, ColoredFormatter, set_log_level

__all__ = ["REFTIME_LOGGER", "ColoredFormatter", "set_log_level"]
