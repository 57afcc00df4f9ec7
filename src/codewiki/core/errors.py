"""Validation errors raised while rendering or saving a page.

// [LAW:one-source-of-truth] Every way a save can be rejected is a class here.

All render errors are attached to the page's `body` field; a raised error
means nothing from that render attempt was persisted.
"""

from __future__ import annotations


class RenderValidationError(ValueError):
    """A page body that cannot be rendered."""

    field = "body"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MismatchedCodeBlock(RenderValidationError):
    def __init__(self, open_tag: str, close_tag: str):
        super().__init__(
            f"has mismatched code highlighter block ('{open_tag}' and '{close_tag}')"
        )
        self.open_tag = open_tag
        self.close_tag = close_tag


class MismatchedDiagramBlock(RenderValidationError):
    def __init__(self):
        super().__init__("has mismatched DOT code block")


class UnsupportedLanguage(RenderValidationError):
    def __init__(self, language: str):
        super().__init__(f"has a code block in an unknown language ('{language}')")
        self.language = language


class DelegateRenderFailure(RenderValidationError):
    """The markup engine, highlighter, or diagram renderer raised.

    The original exception is kept as ``cause`` and chained via ``raise ... from``.
    """

    def __init__(self, engine: str, cause: BaseException):
        super().__init__(f"could not be rendered by {engine}: {cause}")
        self.engine = engine
        self.cause = cause


class PageValidationError(ValueError):
    """A page rejected before commit. ``errors`` holds (field, message) pairs."""

    def __init__(self, errors: list[tuple[str, str]]):
        self.errors = list(errors)
        super().__init__(
            "; ".join(f"{field} {message}" for field, message in self.errors)
        )
