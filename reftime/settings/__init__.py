from reftime.settings.reftime_settings import PRESETS, RefTimeSettings

__all__ = ["PRESETS", "RefTimeSettings"]
