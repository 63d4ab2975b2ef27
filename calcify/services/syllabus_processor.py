"""Sanity checks for uploaded syllabus files using PyMuPDF."""

import logging

import pymupdf  # PyMuPDF

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


class SyllabusProcessor:
    """Service for inspecting uploaded course materials before they are stored."""

    @staticmethod
    def is_pdf(mime_type: str | None, filename: str) -> bool:
        """True when the upload claims to be a PDF by MIME type or extension."""
        return mime_type == PDF_MIME_TYPE or filename.lower().endswith(".pdf")

    @staticmethod
    async def validate_pdf(pdf_bytes: bytes) -> bool:
        """
        Validate that the bytes represent a readable PDF with at least one page.

        Args:
            pdf_bytes: Raw bytes to validate

        Returns:
            True if valid PDF, False otherwise
        """
        try:
            doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
            is_valid = len(doc) > 0
            doc.close()
            return is_valid
        except Exception as e:
            logger.info("Rejected unreadable PDF upload: %s", e)
            return False


# Singleton instance
syllabus_processor = SyllabusProcessor()
