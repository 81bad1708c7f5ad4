from .exporter import MediaSplitExporter
from .orchestrator import ChunkedTranscriptionOrchestrator, RunControl

__all__ = ["ChunkedTranscriptionOrchestrator", "MediaSplitExporter", "RunControl"]
