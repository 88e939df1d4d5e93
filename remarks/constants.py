"""
Constants for ReMarks.

These constants are used by various modules for sensible defaults.
Many are also available via the config system.
"""

# Browser bookmark tree ids
SYNTHETIC_ROOT_ID = "0"
BOOKMARKS_BAR_ID = "1"
OTHER_BOOKMARKS_ID = "2"
MOBILE_BOOKMARKS_ID = "3"

# Reserved roots seeded into every local store, in display order
RESERVED_ROOTS = (
    (BOOKMARKS_BAR_ID, "Bookmarks bar"),
    (OTHER_BOOKMARKS_ID, "Other bookmarks"),
    (MOBILE_BOOKMARKS_ID, "Mobile bookmarks"),
)

# Joins folder titles in stored allow-list entries
PATH_SEPARATOR = "###"

# Remote artifact filenames (siblings in the repository root)
STRUCTURAL_FILE = "bookmarks.json"
EXCHANGE_FILE = "bookmarks.html"
README_FILE = "README.md"

# Network
GITHUB_API_URL = "https://api.github.com"
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_USER_AGENT = "ReMarks/1.0"
