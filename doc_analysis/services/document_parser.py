"""
Document Parser Service
Turns uploaded files into plain-text Documents using unstructured.io.
"""
import os
from typing import List, Optional
import structlog

from doc_analysis.models.schemas import Document

logger = structlog.get_logger()


class DocumentParser:
    """Parses Word and plain-text files into a Document."""

    SUPPORTED_EXTENSIONS = {".doc", ".docx", ".txt", ".md"}
    PLAIN_TEXT_EXTENSIONS = {".txt", ".md"}

    def validate(self, file_name: str) -> str:
        """
        Check the file extension.

        Returns:
            The lower-cased extension

        Raises:
            ValueError: If the extension is not supported
        """
        ext = os.path.splitext(file_name or "")[1].lower()
        if ext not in self.SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported file type: {ext or 'none'}. "
                f"Supported types: {sorted(self.SUPPORTED_EXTENSIONS)}"
            )
        return ext

    def parse(self, file_path: str, file_name: Optional[str] = None) -> Document:
        """
        Parse a file on disk into a Document.

        Args:
            file_path: Path to the file
            file_name: Original file name (defaults to the path's basename)

        Returns:
            Document with the extracted text
        """
        name = file_name or os.path.basename(file_path)
        ext = self.validate(name)

        logger.info("Parsing document", path=file_path, file_type=ext)

        if ext in self.PLAIN_TEXT_EXTENSIONS:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                text = f.read()
        else:
            text = self._partition_text(file_path)

        logger.info("Document parsed successfully", name=name, text_length=len(text))
        return Document(text=text, name=name)

    def _partition_text(self, file_path: str) -> str:
        from unstructured.partition.auto import partition

        try:
            elements = partition(filename=file_path, strategy="fast")
        except Exception as e:
            logger.error("Failed to parse document", error=str(e), path=file_path)
            raise ValueError(f"Failed to parse file: {e}") from e

        return self._join_elements(elements)

    def _join_elements(self, elements: List) -> str:
        """Join element texts with paragraph breaks so the chunker can find them."""
        parts = []
        for el in elements:
            text = str(el.text) if hasattr(el, "text") else str(el)
            if text.strip():
                parts.append(text.strip())
        return "\n\n".join(parts)


# Singleton instance
_document_parser: Optional[DocumentParser] = None


def get_document_parser() -> DocumentParser:
    """Get singleton document parser instance."""
    global _document_parser
    if _document_parser is None:
        _document_parser = DocumentParser()
    return _document_parser
