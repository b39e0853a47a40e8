from __future__ import annotations


class CasefileError(Exception):
    """Base class for document generation failures."""


class EmptySelection(CasefileError):
    def __init__(self, message: str = 'No posts selected for PDF generation'):
        super().__init__(message)


class AssetLoadFailure(CasefileError):
    """A decorative asset (cover logo) could not be loaded."""


class LinkAttachFailure(CasefileError):
    """A clickable region could not be attached to a page."""


class RenderFailure(CasefileError):
    """Layout or PDF emission failed; no artifact is produced."""
