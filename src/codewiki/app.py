"""Process wiring: builds the collaborators once and hands out a PageService.

// [LAW:single-enforcer] The markup registry is constructed here, once per process,
// and injected; nothing else builds one.
"""

from __future__ import annotations

import logging

import codewiki.io.logging_setup
import codewiki.settings
from codewiki.core.diagram import GraphvizRenderer
from codewiki.core.highlight import PygmentsHighlighter
from codewiki.core.markup import default_registry
from codewiki.core.rendering import Renderer
from codewiki.pages import PageService
from codewiki.settings import WikiConfig
from codewiki.store.page_store import PageStore

logger = logging.getLogger(__name__)


def build_renderer(config: WikiConfig) -> Renderer:
    return Renderer(
        markup=default_registry(),
        highlighter=PygmentsHighlighter(),
        diagrams=GraphvizRenderer(
            config.diagram_dir,
            url_prefix=config.diagram_url_prefix,
            command=config.dot_command,
        ),
    )


def build_service(
    config: WikiConfig | None = None, *, configure_logging: bool = False
) -> PageService:
    if configure_logging:
        codewiki.io.logging_setup.configure()
    config = config or codewiki.settings.load_config()
    store = PageStore.open(config.db_path)
    logger.info("opened page store at %s", config.db_path)
    return PageService(build_renderer(config), store)
