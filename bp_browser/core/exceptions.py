class BpBrowserError(Exception):
    """Root of the errors raised by bp_browser loaders and config."""


class ConfigError(BpBrowserError):
    """config.json is unreadable or a field has the wrong type or value."""


class DatasetSchemaError(BpBrowserError):
    """A corpus table is missing, empty, or lacks required columns."""
