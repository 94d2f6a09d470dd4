import io

import pdfplumber

from statement_worker.pdf.base import BasePageCounter
from statement_worker.pdf.exceptions import PdfInspectionError


class PdfPlumberAdapter(BasePageCounter):
    """Counts PDF pages using pdfplumber."""

    def count_pages(self, pdf_bytes: bytes) -> int:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                return len(pdf.pages)
        except Exception as exc:
            raise PdfInspectionError(f"pdfplumber page count failed: {exc}") from exc
