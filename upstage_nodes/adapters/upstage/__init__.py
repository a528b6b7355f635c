"""
Upstage adapter package.

One node per Upstage capability:
- document_ocr: DocumentOCRUpstage (digitization, OCR model)
- document_parsing: DocumentParsingUpstage (sync/async document parse)
- information_extraction: InformationExtractionUpstage (extraction, schema generation)
- document_classification: DocumentClassificationUpstage

Shared helpers:
- _multipart: multipart/form-data body builder
- _json_repair: best-effort repair of malformed response_format JSON
"""

from .document_classification import DocumentClassificationUpstage
from .document_ocr import DocumentOCRUpstage
from .document_parsing import DocumentParsingUpstage
from .information_extraction import InformationExtractionUpstage

__all__ = [
    "DocumentClassificationUpstage",
    "DocumentOCRUpstage",
    "DocumentParsingUpstage",
    "InformationExtractionUpstage",
]
