"""Lenia engine exception hierarchy.

Configuration problems surface as ``ConfigurationError`` (also a
``ValueError``) at the point a parameter is assigned, before any step runs.
"""


class LeniaError(Exception):
    """Root of all engine exceptions."""


class ConfigurationError(LeniaError, ValueError):
    """Invalid species parameters, unknown ids, or a malformed config."""


class FieldAllocationError(LeniaError):
    """The density buffers could not be created (e.g. zero-sized field)."""


class PresetLimitError(LeniaError):
    """The preset gallery is full."""
