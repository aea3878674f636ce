"""Recipe storage on SQLite with tag management and document export."""

__version__ = "0.1.0"