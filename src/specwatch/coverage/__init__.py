"""Coverage store and Istanbul reporting."""

from specwatch.coverage.store import CoverageCheck, CoverageStore, RenderMode

__all__ = [
    "CoverageCheck",
    "CoverageStore",
    "RenderMode",
]
