"""Binary mask generation from CVAT for images XML annotations."""

from cvatmask.pipeline.document import Document, load_document
from cvatmask.pipeline.image import ImageRecord
from cvatmask.pipeline.orchestrator import BatchMaskGenerator, BatchResult, generate_masks

__version__ = "0.1.0"

__all__ = [
    "BatchMaskGenerator",
    "BatchResult",
    "Document",
    "ImageRecord",
    "generate_masks",
    "load_document",
]
