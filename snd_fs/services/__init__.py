"""Service layer for the snd filesystem."""

from snd_fs.services.garbage_collector import GarbageCollector
from snd_fs.services.mirrored_file import MirroredFile, copy_back
from snd_fs.services.operation_worker import OperationWorker

__all__ = [
    "GarbageCollector",
    "MirroredFile",
    "OperationWorker",
    "copy_back",
]
