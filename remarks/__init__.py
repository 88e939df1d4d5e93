"""
ReMarks - bookmark tree sync

Keeps a browser-style bookmark tree in step with a GitHub repository.
Each sync merges the remote snapshot into the local store (only adding
links, optionally restricted to selected folders) and pushes the result
back as a JSON snapshot, a Netscape bookmark file, and a README index.

Example Usage:
    >>> from remarks import Database, GitHubClient, SyncCredentials, run_sync
    >>> db = Database("bookmarks.db")
    >>> client = GitHubClient(SyncCredentials("octocat", "bookmarks", "ghp_..."))
    >>> report = run_sync(db, client, allowed_paths=["Bookmarks bar###Work"])
"""

__version__ = "1.0.0"

# Tree model
from remarks.tree import (
    Folder,
    Link,
    FlatRecord,
    SyncCredentials,
    RemoteArtifact,
    MalformedTreeError,
    load_tree,
)

# Core operations
from remarks.flatten import flatten, folder_paths
from remarks.filters import is_allowed
from remarks.paths import PathResolver
from remarks.merge import MergeResult, merge_remote
from remarks.exporters import export_json, export_html, export_markdown, export_file
from remarks.remote import GitHubClient, RemoteError, RemoteConflictError, RemoteContentError
from remarks.sync import SyncReport, UnknownFolderError, run_sync, list_remote_folders, select_paths

# Stores
from remarks.store import LocalStore, MemoryStore
from remarks.db import Database, get_db

# Configuration
from remarks.config import RemarksConfig, ConfigurationError, get_config, init_config

__all__ = [
    # Tree model
    "Folder",
    "Link",
    "FlatRecord",
    "SyncCredentials",
    "RemoteArtifact",
    "MalformedTreeError",
    "load_tree",
    # Core operations
    "flatten",
    "folder_paths",
    "is_allowed",
    "PathResolver",
    "MergeResult",
    "merge_remote",
    "export_json",
    "export_html",
    "export_markdown",
    "export_file",
    "GitHubClient",
    "RemoteError",
    "RemoteConflictError",
    "RemoteContentError",
    "SyncReport",
    "UnknownFolderError",
    "run_sync",
    "list_remote_folders",
    "select_paths",
    # Stores
    "LocalStore",
    "MemoryStore",
    "Database",
    "get_db",
    # Config
    "RemarksConfig",
    "ConfigurationError",
    "get_config",
    "init_config",
]
