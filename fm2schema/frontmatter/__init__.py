"""Front-matter extraction and document types."""

from .documents import DocumentFailure, FrontmatterData, MarkdownDocument
from .extractor import Absent, ExtractionResult, FrontmatterExtractor, Present, normalize_value

__all__ = [
    "Absent",
    "DocumentFailure",
    "ExtractionResult",
    "FrontmatterData",
    "FrontmatterExtractor",
    "MarkdownDocument",
    "Present",
    "normalize_value",
]
