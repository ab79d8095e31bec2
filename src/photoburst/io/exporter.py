"""
Snapshot export.

Writes the particle arena to a NumPy archive and a compact JSON summary
of a show at a point in time, for offline inspection and regression runs.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

import numpy as np

from photoburst.colors import palette_to_hex
from photoburst.core.particles import FIELDS, ParticleRingBuffer


@dataclass
class SnapshotMetadata:
    """Header for a show summary."""

    time: float
    capacity: int
    cursor: int
    schema_version: str = "1.0"


class SnapshotExporter:
    """
    Serializes particle buffers and show state.

    Args:
        precision: Decimal places for floating point values in JSON.
    """

    def __init__(self, precision: int = 4):
        self.precision = precision

    def _round(self, value: float) -> float:
        return round(float(value), self.precision)

    def _vec(self, values) -> list:
        return [self._round(v) for v in values]

    def build_summary(self, show, time: float) -> dict[str, Any]:
        """
        Summarize a FireworkShow.

        Args:
            show: The show to describe.
            time: Simulation time used for liveness.

        Returns:
            JSON-ready dictionary.
        """
        particles = show.particles
        metadata = SnapshotMetadata(
            time=self._round(time),
            capacity=particles.capacity,
            cursor=particles.cursor,
        )

        shells = [
            {
                "id": s.id,
                "position": self._vec(s.position),
                "pattern": s.pattern,
                "photo": s.is_photo_linked,
                "chained": s.has_chained_explosion,
            }
            for s in show.simulator.shells
        ]

        photos = [
            {
                "id": p.id,
                "source": p.source_id,
                "status": p.status.value,
                "visible": p.visible,
                "palette": palette_to_hex(p.palette) if p.palette is not None else None,
                "mosaic_points": len(p.mosaic) if p.mosaic is not None else 0,
            }
            for p in show.library.photos
        ]

        return {
            "metadata": {
                "time": metadata.time,
                "capacity": metadata.capacity,
                "cursor": metadata.cursor,
                "schema_version": metadata.schema_version,
            },
            "live_particles": particles.live_count(time),
            "shells": shells,
            "pending_explosions": show.simulator.pending_count,
            "mosaic_instances_active": len(show.mosaic_pool.active),
            "photos": photos,
        }

    def export_json(
        self,
        show,
        time: float,
        output_path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        """Write build_summary() to a JSON file."""
        summary = self.build_summary(show, time)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=indent)

        return output_path

    def export_numpy(
        self,
        particles: ParticleRingBuffer,
        output_path: Union[str, Path],
        time: float | None = None,
    ) -> Path:
        """
        Write every particle attribute array to a compressed .npz.

        When `time` is given a boolean `live` mask is stored too.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        arrays = {name: getattr(particles, name) for name in FIELDS}
        arrays["cursor"] = np.array(particles.cursor)
        if time is not None:
            arrays["live"] = particles.live_mask(time)
            arrays["time"] = np.array(time)

        np.savez_compressed(output_path, **arrays)
        return output_path
