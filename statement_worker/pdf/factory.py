from statement_worker.config.settings import Settings
from statement_worker.pdf.base import BasePageCounter
from statement_worker.pdf.pdfplumber_adapter import PdfPlumberAdapter
from statement_worker.pdf.pymupdf_adapter import PyMuPdfAdapter


class PageCounterFactory:
    """Creates the correct page counter based on settings."""

    ADAPTERS: dict[str, type[BasePageCounter]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePageCounter:
        engine = settings.page_counter_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown page counter engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
