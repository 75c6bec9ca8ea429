"""Orchestrator package - coordinates export workflows."""
from .batch import BatchExportOrchestrator
from .core import ExportOrchestrator
from .single_export import SingleEntityExporter

__all__ = ["ExportOrchestrator", "BatchExportOrchestrator", "SingleEntityExporter"]
