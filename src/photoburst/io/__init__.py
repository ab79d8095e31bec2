"""Snapshot export."""

from photoburst.io.exporter import SnapshotExporter

__all__ = ["SnapshotExporter"]
