from __future__ import annotations

from pathlib import Path


class SyncError(Exception):
    """Base class for fatal errors raised by the synchronisation pipeline."""


class TraversalError(SyncError):
    def __init__(self, path: Path, cause: OSError) -> None:
        super().__init__(f"Failed to walk {path}: {cause}")
        self.path = path


class CopyError(SyncError):
    def __init__(self, source: Path, destination: Path, cause: OSError) -> None:
        super().__init__(f"Failed to copy {source} to {destination}: {cause}")
        self.source = source
        self.destination = destination


class PathEncodingError(SyncError):
    pass


class ChannelClosed(SyncError):
    pass


def path_str(path: Path) -> str:
    text = str(path)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise PathEncodingError(f"Could not decode a path to UTF-8: {path!r}") from exc
    return text
