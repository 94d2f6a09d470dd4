from abc import ABC, abstractmethod


class BasePageCounter(ABC):
    """Contract for all PDF page inspection adapters."""

    @abstractmethod
    def count_pages(self, pdf_bytes: bytes) -> int:
        """Count the pages of a PDF document.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Number of pages in the document's page tree.

        Raises:
            PdfInspectionError: if the bytes cannot be opened as a PDF.
        """
