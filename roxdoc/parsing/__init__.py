"""Comment extraction and tag parsing."""

from .declarations import DeclarationRecognizer
from .extractor import BlockExtractor, ExtractionResult
from .tags import TagParser

__all__ = ["BlockExtractor", "DeclarationRecognizer", "ExtractionResult", "TagParser"]
