"""Form document model: extraction, filling and validation probing."""

from autofill.dom.document import ChangeNotifier, DocumentEventNotifier, FormDocument
from autofill.dom.extractor import FieldExtractor, analyze_form, extract_job_posting
from autofill.dom.filler import FillEngine
from autofill.dom.validation import ValidationProbe

__all__ = [
    "ChangeNotifier",
    "DocumentEventNotifier",
    "FormDocument",
    "FieldExtractor",
    "analyze_form",
    "extract_job_posting",
    "FillEngine",
    "ValidationProbe",
]
