"""Contract between the save pipeline and whatever stores pages.

// [LAW:locality-or-seam] PageService talks only to this protocol, never to sqlite.

A save files its records under the version it is producing, not the version
currently visible. Calls happen in this order, inside ``transaction()``:

1. ``file_page`` stores the page row, its history row and the new records,
   returning the ids the records were assigned.
2. The caller finalizes code stamps with those ids.
3. ``commit_rendered`` stores the finalized HTML.
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from codewiki.core.rendering import SubResource

if TYPE_CHECKING:
    from codewiki.pages import Page


@dataclass(frozen=True)
class FiledResources:
    page_id: int
    resource_ids: tuple[int, ...]  # aligned with the filed sub_resources


class VersionCoordinator(Protocol):
    def next_version(self, page: Page) -> int:
        ...

    def transaction(self) -> AbstractContextManager[object]:
        ...

    def file_page(
        self,
        page: Page,
        target_version: int,
        sub_resources: Sequence[SubResource],
    ) -> FiledResources:
        ...

    def commit_rendered(self, page_id: int, target_version: int, rendered: str) -> None:
        ...

    def find_by_path(self, path: str, exclude_id: int | None = None) -> Page | None:
        ...
