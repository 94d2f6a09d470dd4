class PdfInspectionError(Exception):
    """Raised when a PDF cannot be opened or its pages cannot be read."""
