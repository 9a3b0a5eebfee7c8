"""Services module."""

from linkstore.services.key_generator import KeyGenerator
from linkstore.services.assignment import Assignment, AssignmentStatus, ShortKeyAssigner
from linkstore.services.batch import BatchIngestor, BatchItem, BatchResult
from linkstore.services.deletion import DeletionRequest, DeletionWorker, WorkerState
from linkstore.services.repository import OwnerRepository, URLRepository

__all__ = [
    "KeyGenerator",
    "Assignment",
    "AssignmentStatus",
    "ShortKeyAssigner",
    "BatchIngestor",
    "BatchItem",
    "BatchResult",
    "DeletionRequest",
    "DeletionWorker",
    "WorkerState",
    "OwnerRepository",
    "URLRepository",
]
