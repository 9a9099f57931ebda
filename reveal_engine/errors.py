"""Exception types raised inside the prize widgets."""

from config.widget_schema import ConfigError  # noqa: F401 (re-exported)


class RevealError(Exception):
    """Base class for widget runtime errors."""


class TextureLoadError(RevealError):
    """Cover texture could not be fetched or decoded."""

    def __init__(self, ref: str, reason: str):
        self.ref = ref
        self.reason = reason
        super().__init__(f"Failed to load texture {ref!r}: {reason}")
