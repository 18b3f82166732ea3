"""Text chunking stage."""

from docstage.chunking.chunker import TextChunker, chunk_type, quality_score

__all__ = ["TextChunker", "chunk_type", "quality_score"]
