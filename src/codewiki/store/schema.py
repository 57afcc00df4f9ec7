"""SQLite schema initialization for page storage.

Tables:
  - pages: current state of each page (one row per page)
  - page_versions: every saved version of a page
  - code_blocks: code embeds, filed under the page version that produced them
  - diagram_blocks: diagram embeds, filed the same way
"""

import os
import sqlite3

SCHEMA_VERSION = 1


def init_db(path: str) -> sqlite3.Connection:
    """Initialize database at the given path, creating tables if needed.

    Returns a connection configured for WAL mode and safe concurrent access.
    """
    if path != ":memory:":
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA foreign_keys=ON")

    _create_tables(conn)

    return conn


def _create_tables(conn: sqlite3.Connection) -> None:
    """Create all schema tables if they don't exist."""
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS pages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            path TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            body TEXT,
            markup_parser TEXT,
            rendered TEXT NOT NULL DEFAULT '',
            version INTEGER NOT NULL DEFAULT 0,
            section_id INTEGER,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        );

        CREATE TABLE IF NOT EXISTS page_versions (
            page_id INTEGER NOT NULL REFERENCES pages(id),
            version INTEGER NOT NULL,
            title TEXT NOT NULL,
            body TEXT,
            markup_parser TEXT,
            rendered TEXT NOT NULL DEFAULT '',
            updated_at TEXT NOT NULL DEFAULT (datetime('now')),
            PRIMARY KEY (page_id, version)
        );

        CREATE TABLE IF NOT EXISTS code_blocks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            page_id INTEGER NOT NULL REFERENCES pages(id),
            version INTEGER NOT NULL,
            code TEXT NOT NULL,
            language TEXT NOT NULL,
            theme TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS diagram_blocks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            page_id INTEGER NOT NULL REFERENCES pages(id),
            version INTEGER NOT NULL,
            source TEXT NOT NULL,
            image_url TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_code_blocks_page_version ON code_blocks(page_id, version);
        CREATE INDEX IF NOT EXISTS idx_diagram_blocks_page_version ON diagram_blocks(page_id, version);
        CREATE INDEX IF NOT EXISTS idx_pages_updated ON pages(updated_at);
    """)

    conn.commit()
