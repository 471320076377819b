"""
Command line entry point: mesh statistics and plane slicing of an STL file.

Usage:
    stl-facets <stl_file> [--axis {x,y,z}] [--layer-height H | --slices N]
               [--output-dir DIR] [--config FILE] [--stats-only]

Examples:
    stl-facets part.stl --stats-only
    stl-facets part.stl --layer-height 0.2 --output-dir slices
    stl-facets part.stl --axis x --slices 50 --metadata slices.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from stl_facets.export.svg_exporter import export_layers
from stl_facets.geometry.errors import TriangleError
from stl_facets.geometry.mesh_stats import calculate_mesh_statistics
from stl_facets.io.stl_loader import STLLoadError, load_triangles
from stl_facets.logging_config import LogContext, log_timing, setup_logging
from stl_facets.project_config import ProjectConfig, load_config
from stl_facets.slicing import SliceParameters, Slicer

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stl-facets",
        description="Compute mesh statistics and slice an STL model with axis-aligned planes",
    )
    parser.add_argument("stl", type=Path, help="Input STL model")
    parser.add_argument("--axis", choices=["x", "y", "z"], default=None,
                        help="Axis normal to the slicing planes")
    spacing = parser.add_mutually_exclusive_group()
    spacing.add_argument("--layer-height", type=float, default=None,
                         help="Distance between slicing planes")
    spacing.add_argument("--slices", type=int, default=None,
                         help="Number of slicing planes")
    parser.add_argument("--output-dir", type=Path, default=None,
                        help="Directory for per-layer SVG files")
    parser.add_argument("--metadata", type=Path, default=None,
                        help="Write statistics and slicing summary as JSON")
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to a .facets.json configuration file")
    parser.add_argument("--stats-only", action="store_true",
                        help="Print mesh statistics and skip slicing")
    parser.add_argument("--parallel", action="store_true",
                        help="Slice layers in a thread pool")
    parser.add_argument("--json-log", type=Path, default=None,
                        help="Also write JSON log records to this file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    return parser


def apply_cli_overrides(config: ProjectConfig, args: argparse.Namespace) -> ProjectConfig:
    """Fold explicit command line values into the loaded configuration."""
    if args.axis:
        config.slicing.axis = args.axis
    if args.layer_height is not None:
        config.slicing.layer_height = args.layer_height
        config.slicing.num_slices = None
    elif args.slices is not None:
        config.slicing.num_slices = args.slices
        config.slicing.layer_height = None
    if args.parallel:
        config.slicing.parallel = True
    if args.output_dir is not None:
        config.output.output_dir = str(args.output_dir)
    return config


def run(args: argparse.Namespace) -> int:
    """Load, measure and slice; returns a process exit code."""
    try:
        config = apply_cli_overrides(load_config(args.stl, args.config), args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_FAILURE

    with LogContext(model=args.stl.name):
        try:
            vertices, triangles = load_triangles(
                str(args.stl), dedup_decimals=config.mesh.dedup_decimals,
            )
            stats = calculate_mesh_statistics(
                triangles,
                n_vertices=len(vertices),
                degenerate_area_threshold=config.mesh.degenerate_area_threshold,
            )
        except (STLLoadError, TriangleError) as exc:
            logger.error("Cannot read mesh: %s", exc)
            return EXIT_FAILURE

        print(stats.summary())
        metadata = {'mesh': stats.to_dict()}

        if not args.stats_only:
            # A configured layer height takes precedence over the slice count.
            layer_height = config.slicing.layer_height
            num_slices = None if layer_height is not None else config.slicing.num_slices
            try:
                params = SliceParameters(
                    axis=config.slicing.axis,
                    layer_height=layer_height,
                    num_slices=num_slices,
                    parallel=config.slicing.parallel,
                    max_workers=config.slicing.max_workers,
                )
                result = Slicer(params).slice(triangles)
            except (ValueError, TriangleError) as exc:
                logger.error("Slicing failed: %s", exc)
                return EXIT_FAILURE

            print()
            print(result.summary())
            metadata['slicing'] = result.to_dict()

            if config.output.output_dir and "svg" in config.output.formats:
                try:
                    with log_timing(logger, "Exporting layers", level=logging.INFO):
                        export_layers(
                            result,
                            stats.bbox,
                            config.output.output_dir,
                            prefix=config.output.prefix,
                            stroke_width=config.output.stroke_width_mm,
                            margin=config.output.margin_mm,
                        )
                except OSError as exc:
                    logger.error("Cannot write layers: %s", exc)
                    return EXIT_FAILURE

        if args.metadata and config.output.write_metadata:
            try:
                args.metadata.parent.mkdir(parents=True, exist_ok=True)
                args.metadata.write_text(json.dumps(metadata, indent=2), encoding='utf-8')
            except OSError as exc:
                logger.error("Cannot write metadata: %s", exc)
                return EXIT_FAILURE
            logger.info("Metadata written: %s", args.metadata)

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argument_parser().parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_file=args.json_log,
        use_colors=sys.stderr.isatty(),
    )
    return run(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
