"""Pages, their paths, and the save pipeline.

A save runs segment -> render -> file -> finalize stamps -> commit under a
per-path lock. Any failure before the transaction commits leaves both the
store and the in-memory Page untouched.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass

from codewiki.core.errors import PageValidationError, RenderValidationError
from codewiki.core.rendering import EMPTY_RESULT, Renderer, RenderResult, check_segments
from codewiki.core.segmentation import segment
from codewiki.core.versioning import VersionCoordinator

logger = logging.getLogger(__name__)

PATH_CHARS = r"a-zA-Z\-_0-9"
PATH_RE = re.compile(rf"^[{PATH_CHARS}]+$")
RESERVED_PATHS = frozenset({"pages", "sections", "parsers", "code_blocks", "syntaxes"})
DEFAULT_PARSER = "markdown"
HOME_PATH = "Home"


def path_for_title(title: str) -> str:
    """URL path for a title: unsupported characters dropped, whitespace to dashes."""
    kept = re.sub(rf"[^ {PATH_CHARS}]", "", title or "")
    return re.sub(r"\s", "-", kept)


@dataclass
class Page:
    title: str
    body: str | None = None
    markup_parser: str | None = DEFAULT_PARSER
    path: str = ""
    rendered: str = ""
    version: int = 0  # 0 until the first save
    id: int | None = None
    section_id: int | None = None

    @classmethod
    def create(
        cls,
        title: str,
        body: str | None = None,
        markup_parser: str | None = DEFAULT_PARSER,
        section_id: int | None = None,
    ) -> Page:
        return cls(
            title=title,
            body=body,
            markup_parser=markup_parser,
            path=path_for_title(title),
            section_id=section_id,
        )

    @property
    def is_new(self) -> bool:
        return self.id is None

    @property
    def parser(self) -> str:
        return self.markup_parser or DEFAULT_PARSER

    def retitle(self, title: str) -> None:
        self.title = title
        self.path = path_for_title(title)

    def is_current(self, version: PageVersion) -> bool:
        return version.version == self.version

    def __str__(self) -> str:
        return self.title


@dataclass(frozen=True)
class PageVersion:
    page_id: int
    version: int
    title: str
    body: str | None
    markup_parser: str | None
    rendered: str


def path_errors(page: Page) -> list[tuple[str, str]]:
    errors: list[tuple[str, str]] = []
    if not (page.title or "").strip():
        errors.append(("title", "can't be blank"))
    if not page.path:
        errors.append(("path", "can't be blank"))
    elif not PATH_RE.match(page.path):
        errors.append(("path", "is invalid"))
    elif page.path in RESERVED_PATHS:
        errors.append(("path", "is reserved"))
    return errors


class PageService:
    """Single entry point for validating, previewing and saving pages.

    // [LAW:single-enforcer] One save in flight per page path, enforced here.
    """

    def __init__(self, renderer: Renderer, coordinator: VersionCoordinator):
        self.renderer = renderer
        self.coordinator = coordinator
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(path, threading.Lock())

    def _identity_errors(self, page: Page) -> list[tuple[str, str]]:
        errors = path_errors(page)
        if page.path:
            similar = self.coordinator.find_by_path(page.path, exclude_id=page.id)
            if similar is not None:
                errors.append(("title", f"results in same url as {similar}"))
        return errors

    def validate(self, page: Page) -> list[tuple[str, str]]:
        """Dry run: path rules, uniqueness, and embed structure.

        Delegate renderers are not invoked, so a page that validates can still
        fail to save if highlighting or diagram rendering fails.
        """
        errors = self._identity_errors(page)
        for error in check_segments(segment(page.body), self.renderer.highlighter):
            errors.append((error.field, error.message))
        return errors

    def preview(self, body: str | None, markup_parser: str | None = DEFAULT_PARSER) -> str:
        if body is None:
            return ""
        return self.renderer.render(segment(body), markup_parser or DEFAULT_PARSER, 0).draft_html

    def save(self, page: Page) -> Page:
        """Render and persist ``page`` as a new version.

        Raises PageValidationError; on failure nothing is persisted and
        ``page`` keeps its previous ``rendered`` and ``version``.
        """
        with self._lock_for(page.path):
            errors = self._identity_errors(page)
            if errors:
                logger.warning("rejected save of %r: %s", page.path, errors)
                raise PageValidationError(errors)

            target_version = self.coordinator.next_version(page)
            result = self._render(page, target_version)

            with self.coordinator.transaction():
                filed = self.coordinator.file_page(page, target_version, result.sub_resources)
                rendered = result.finalize(page.path, filed.resource_ids)
                self.coordinator.commit_rendered(filed.page_id, target_version, rendered)

            page.id = filed.page_id
            page.version = target_version
            page.rendered = rendered
            logger.info(
                "saved %r as version %d with %d embedded blocks",
                page.path,
                target_version,
                len(result.sub_resources),
            )
            return page

    def _render(self, page: Page, target_version: int) -> RenderResult:
        if page.body is None:
            return EMPTY_RESULT
        try:
            return self.renderer.render(segment(page.body), page.parser, target_version)
        except RenderValidationError as e:
            logger.warning("rejected save of %r: body %s", page.path, e.message)
            raise PageValidationError([(e.field, e.message)]) from e