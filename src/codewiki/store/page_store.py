"""SQLite-backed page storage; the VersionCoordinator used in production.

Code and diagram blocks are immutable: each save files a fresh set under the
version it produces, and "blocks as of version V" is a plain equality filter.

One connection is shared by every thread, so all access goes through a
reentrant store lock and an open transaction excludes every other caller.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from codewiki.core.rendering import CodeBlockRecord, DiagramBlockRecord, SubResource
from codewiki.core.versioning import FiledResources
from codewiki.pages import HOME_PATH, Page, PageVersion
from codewiki.store.schema import init_db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredCodeBlock:
    id: int
    page_id: int
    version: int
    code: str
    language: str
    theme: str


@dataclass(frozen=True)
class StoredDiagramBlock:
    id: int
    page_id: int
    version: int
    source: str
    image_url: str


def _page_from_row(row: sqlite3.Row) -> Page:
    return Page(
        id=row["id"],
        path=row["path"],
        title=row["title"],
        body=row["body"],
        markup_parser=row["markup_parser"],
        rendered=row["rendered"],
        version=row["version"],
        section_id=row["section_id"],
    )


class PageStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._lock = threading.RLock()

    @classmethod
    def open(cls, db_path: str) -> PageStore:
        return cls(init_db(db_path))

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def _fetchone(self, sql: str, params: Sequence = ()) -> sqlite3.Row | None:
        with self._lock:
            return self.conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: Sequence = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, params).fetchall()

    # ─── VersionCoordinator ──────────────────────────────────────────────

    def next_version(self, page: Page) -> int:
        if page.id is None:
            return 1
        row = self._fetchone(
            "SELECT MAX(version) FROM page_versions WHERE page_id = ?", (page.id,)
        )
        return (row[0] or 0) + 1

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit everything filed inside the block, or nothing.

        The store lock is held until the commit or rollback, so no other
        thread can read the open transaction's rows or commit them early.
        """
        with self._lock:
            with self.conn:
                yield self.conn

    def file_page(
        self,
        page: Page,
        target_version: int,
        sub_resources: Sequence[SubResource],
    ) -> FiledResources:
        with self._lock:
            return self._file_page(page, target_version, sub_resources)

    def _file_page(
        self,
        page: Page,
        target_version: int,
        sub_resources: Sequence[SubResource],
    ) -> FiledResources:
        if page.id is None:
            cursor = self.conn.execute(
                """
                INSERT INTO pages (path, title, body, markup_parser, version, section_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (page.path, page.title, page.body, page.markup_parser, target_version, page.section_id),
            )
            page_id = cursor.lastrowid
        else:
            page_id = page.id
            self.conn.execute(
                """
                UPDATE pages
                SET path = ?, title = ?, body = ?, markup_parser = ?, version = ?,
                    section_id = ?, updated_at = datetime('now')
                WHERE id = ?
                """,
                (page.path, page.title, page.body, page.markup_parser, target_version, page.section_id, page_id),
            )

        self.conn.execute(
            """
            INSERT INTO page_versions (page_id, version, title, body, markup_parser)
            VALUES (?, ?, ?, ?, ?)
            """,
            (page_id, target_version, page.title, page.body, page.markup_parser),
        )

        resource_ids: list[int] = []
        for record in sub_resources:
            if isinstance(record, CodeBlockRecord):
                cursor = self.conn.execute(
                    """
                    INSERT INTO code_blocks (page_id, version, code, language, theme)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (page_id, record.version, record.code, record.language, record.theme),
                )
            elif isinstance(record, DiagramBlockRecord):
                cursor = self.conn.execute(
                    """
                    INSERT INTO diagram_blocks (page_id, version, source, image_url)
                    VALUES (?, ?, ?, ?)
                    """,
                    (page_id, record.version, record.source, record.image_url),
                )
            else:
                raise TypeError(f"cannot file {type(record).__name__}")
            resource_ids.append(cursor.lastrowid)

        logger.debug(
            "filed page %d version %d with %d blocks", page_id, target_version, len(resource_ids)
        )
        return FiledResources(page_id=page_id, resource_ids=tuple(resource_ids))

    def commit_rendered(self, page_id: int, target_version: int, rendered: str) -> None:
        with self._lock:
            self.conn.execute("UPDATE pages SET rendered = ? WHERE id = ?", (rendered, page_id))
            self.conn.execute(
                "UPDATE page_versions SET rendered = ? WHERE page_id = ? AND version = ?",
                (rendered, page_id, target_version),
            )

    def find_by_path(self, path: str, exclude_id: int | None = None) -> Page | None:
        if exclude_id is None:
            row = self._fetchone("SELECT * FROM pages WHERE path = ?", (path,))
        else:
            row = self._fetchone(
                "SELECT * FROM pages WHERE path = ? AND id <> ?", (path, exclude_id)
            )
        return _page_from_row(row) if row else None

    # ─── Queries ─────────────────────────────────────────────────────────

    def get_page(self, path: str) -> Page | None:
        return self.find_by_path(path)

    def recent_pages(self, limit: int = 10) -> list[Page]:
        rows = self._fetchall(
            "SELECT * FROM pages ORDER BY updated_at DESC, id DESC LIMIT ?", (limit,)
        )
        return [_page_from_row(row) for row in rows]

    def pages_without_home(self) -> list[Page]:
        """Every page except the wiki's front page, ordered by title."""
        rows = self._fetchall(
            "SELECT * FROM pages WHERE path <> ? ORDER BY title, id", (HOME_PATH,)
        )
        return [_page_from_row(row) for row in rows]

    def orphaned_pages(self) -> list[Page]:
        """Pages that belong to no section."""
        rows = self._fetchall(
            "SELECT * FROM pages WHERE section_id IS NULL ORDER BY title, id"
        )
        return [_page_from_row(row) for row in rows]

    def versions(self, page_id: int) -> list[PageVersion]:
        rows = self._fetchall(
            """
            SELECT page_id, version, title, body, markup_parser, rendered
            FROM page_versions WHERE page_id = ? ORDER BY version
            """,
            (page_id,),
        )
        return [PageVersion(**dict(row)) for row in rows]

    def code_blocks(self, page_id: int, version: int) -> list[StoredCodeBlock]:
        rows = self._fetchall(
            """
            SELECT id, page_id, version, code, language, theme
            FROM code_blocks WHERE page_id = ? AND version = ? ORDER BY id
            """,
            (page_id, version),
        )
        return [StoredCodeBlock(**dict(row)) for row in rows]

    def diagram_blocks(self, page_id: int, version: int) -> list[StoredDiagramBlock]:
        rows = self._fetchall(
            """
            SELECT id, page_id, version, source, image_url
            FROM diagram_blocks WHERE page_id = ? AND version = ? ORDER BY id
            """,
            (page_id, version),
        )
        return [StoredDiagramBlock(**dict(row)) for row in rows]

    def get_code_block(self, block_id: int) -> StoredCodeBlock | None:
        row = self._fetchone(
            "SELECT id, page_id, version, code, language, theme FROM code_blocks WHERE id = ?",
            (block_id,),
        )
        return StoredCodeBlock(**dict(row)) if row else None
