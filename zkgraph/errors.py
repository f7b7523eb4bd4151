"""Fatal, whole-build failures.

Per-note content problems are not exceptions; they are collected as
``NoteError`` values on the build result.
"""


class ZkGraphError(Exception):
    """Base class for failures that abort a build."""


class ConfigError(ZkGraphError):
    """The configuration file is malformed or names an unknown format."""


class CorpusNotFound(ZkGraphError):
    """The notes directory does not exist or cannot be read."""


class NoteUnreadable(ZkGraphError):
    """A discovered note file could not be read (deleted, permissions)."""
