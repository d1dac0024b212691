from .base import ConfigStore, LocalTreeStore, OnChange
from .filesystem import FileSystemStore
from .git import GitCommandError, GitStore

__all__ = [
    "ConfigStore",
    "FileSystemStore",
    "GitCommandError",
    "GitStore",
    "LocalTreeStore",
    "OnChange",
]
