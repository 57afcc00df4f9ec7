"""Diagram rendering for `::` embeds using the Graphviz `dot` executable.

Images are content-addressed: the file name is the sha256 of the source, so
re-rendering an unchanged diagram reuses the existing file.
"""

from __future__ import annotations

import hashlib
import logging
import subprocess
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class DiagramRenderer(Protocol):
    def render(self, source: str) -> str:
        """Render diagram source and return the image URL."""
        ...


class GraphvizRenderer:
    def __init__(
        self,
        output_dir: str | Path,
        url_prefix: str = "/diagrams",
        command: str = "dot",
        image_format: str = "png",
    ):
        self.output_dir = Path(output_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.command = command
        self.image_format = image_format

    def image_name(self, source: str) -> str:
        digest = hashlib.sha256(source.encode("utf-8")).hexdigest()
        return f"{digest}.{self.image_format}"

    def render(self, source: str) -> str:
        name = self.image_name(source)
        target = self.output_dir / name
        if not target.exists():
            self.output_dir.mkdir(parents=True, exist_ok=True)
            # Only a finished image lands at the final name.
            partial = target.with_name(name + ".tmp")
            try:
                subprocess.run(
                    [self.command, f"-T{self.image_format}", "-o", str(partial)],
                    input=source,
                    capture_output=True,
                    text=True,
                    check=True,
                )
            except subprocess.CalledProcessError as e:
                logger.warning("dot failed for %s: %s", name, (e.stderr or "").strip())
                partial.unlink(missing_ok=True)
                raise
            partial.replace(target)
            logger.debug("rendered diagram %s", name)
        return f"{self.url_prefix}/{name}"
