"""pagesync - one-way content synchronization from Notion into PostgreSQL."""

__version__ = "0.1.0"
