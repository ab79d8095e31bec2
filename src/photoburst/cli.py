"""
CLI entry point for headless firework simulation.

Usage:
    photoburst-sim [options]
    python -m photoburst [options]

Runs a show at a fixed frame rate without any display, optionally
igniting photos from a directory, and writes particle/summary snapshots.
"""

import argparse
import sys
import time
from pathlib import Path

from photoburst.config import FireworksConfig, ShowConfig
from photoburst.io.exporter import SnapshotExporter
from photoburst.log import setup_logging
from photoburst.show import FireworkShow


def _report_progress(frame: int, total: int, sim_time: float, live: int, width: int = 30):
    """Show simulated time and live particle count; one line per 5% off a tty."""
    done = frame / max(total, 1)
    status = f"t={sim_time:6.2f}s  live {live:6d}"
    if not sys.stdout.isatty():
        if frame % max(1, total // 20) == 0 or frame >= total:
            print(f"{done * 100:3.0f}%  {status}", flush=True)
        return

    filled = int(width * done)
    sys.stdout.write(f"\r|{'=' * filled}{' ' * (width - filled)}| {status}")
    if frame >= total:
        sys.stdout.write("\n")
    sys.stdout.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photoburst-sim",
        description="Headless particle firework simulation",
    )

    parser.add_argument(
        "-d", "--duration", type=float, default=10.0,
        help="Simulated seconds (default: 10)",
    )
    parser.add_argument("-f", "--fps", type=int, default=60, help="Ticks per second (default: 60)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for a reproducible run")

    # Photos
    parser.add_argument(
        "--images", type=Path, default=None,
        help="Directory of photos to ignite (jpg, png, gif, webp)",
    )
    parser.add_argument(
        "--photo-every", type=float, default=2.0,
        help="Ignite a photo shell every N seconds when photos are loaded (default: 2.0)",
    )

    # Show
    parser.add_argument("--no-auto-fire", action="store_true", help="Only the opening salvo")
    parser.add_argument(
        "--max-particles", type=int, default=32000,
        help="Particle arena capacity (default: 32000)",
    )

    # Output
    parser.add_argument("-o", "--output", type=Path, default=None, help="Particle snapshot (.npz)")
    parser.add_argument("--summary", type=Path, default=None, help="Show summary (.json)")
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.images is not None and not args.images.is_dir():
        print(f"Error: Image directory not found: {args.images}", file=sys.stderr)
        sys.exit(1)

    config = ShowConfig(fireworks=FireworksConfig(max_particles=args.max_particles))
    fps = max(1, args.fps)
    dt = 1.0 / fps
    total_frames = int(args.duration * fps)

    show = FireworkShow(config, seed=args.seed)
    try:
        if args.images is not None:
            handles = show.library.load_directory(args.images)
            print(f"Loading {len(handles)} photos from {args.images}")

        print(f"Simulating {total_frames} frames @ {fps}fps")
        t0 = time.time()

        show.opening_salvo(0.0)
        show.auto_fire = not args.no_auto_fire
        next_photo = args.photo_every

        for frame in range(1, total_frames + 1):
            now = frame * dt
            if args.images is not None and now >= next_photo:
                show.ignite_photo(now)
                next_photo += args.photo_every
            show.update(dt, now)
            _report_progress(frame, total_frames, now, show.particles.live_count(now))

        end_time = total_frames * dt
        elapsed = time.time() - t0
        print(f"\nDone in {elapsed:.1f}s ({total_frames / max(elapsed, 0.01):.1f} ticks/s)")
        print(f"  Live particles: {show.particles.live_count(end_time)}")
        print(f"  Shells in flight: {show.simulator.active_count}")

        exporter = SnapshotExporter()
        if args.output is not None:
            path = exporter.export_numpy(show.particles, args.output, time=end_time)
            print(f"  Particles: {path}")
        if args.summary is not None:
            path = exporter.export_json(show, end_time, args.summary)
            print(f"  Summary: {path}")
    finally:
        show.close()


if __name__ == "__main__":
    main()
