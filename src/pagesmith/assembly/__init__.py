"""Page assembly: merge stored sections into one branded HTML page."""

from pagesmith.assembly.assembler import (
    DEFAULT_RECOMMENDED,
    DEFAULT_REQUIRED,
    AssemblyResult,
    PageAssembler,
    merge_sections,
)
from pagesmith.assembly.envelope import PageMeta, render_page

__all__ = [
    "DEFAULT_RECOMMENDED",
    "DEFAULT_REQUIRED",
    "AssemblyResult",
    "PageAssembler",
    "PageMeta",
    "merge_sections",
    "render_page",
]
