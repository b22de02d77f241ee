"""
Command line entry point for unfolding a binary STL file.

Reads the file, builds the mesh graph, runs the traversal and prints one
line per face in attachment order::

    <face> <entering edge or '-'> <len 0-1> <len 1-2> <len 2-0>

Diagnostics (missing edges, incomplete coverage) go to the log on
stderr so stdout stays machine readable.  Exit status is 1 when the
input cannot be parsed and 0 otherwise; a traversal that does not reach
every face is reported as a warning.

Usage::

    python -m netfold.cli model.stl --root 0
    python -m netfold.cli model.stl --all-components -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence, TextIO

from .services.mesh_graph import MeshGraphError, build_mesh
from .services.primitives import EPS
from .services.stl_reader import StlFormatError, read_stl_file
from .services.traversal import TraversalError, UnfoldResult, traverse, unfold_components

logger = logging.getLogger("netfold.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netfold",
        description="Compute the unfolding order of a binary STL mesh.",
    )
    parser.add_argument("path", type=Path, help="Binary STL file to unfold")
    parser.add_argument("--root", type=int, default=0, help="Face to start from (default: 0)")
    parser.add_argument(
        "--all-components",
        action="store_true",
        help="Keep traversing from unvisited faces until every face is placed",
    )
    parser.add_argument(
        "--eps",
        type=float,
        default=EPS,
        help=f"Per-axis vertex tolerance (default: {EPS:g})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def write_records(results: Sequence[UnfoldResult], out: TextIO) -> None:
    for result in results:
        for record in result.records:
            entering = "-" if record.entering_edge is None else str(record.entering_edge)
            l0, l1, l2 = record.edge_lengths
            out.write(f"{record.face} {entering} {l0:f} {l1:f} {l2:f}\n")


def main(argv: Sequence[str] | None = None, out: TextIO | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    out = out or sys.stdout

    try:
        stl = read_stl_file(args.path)
    except (FileNotFoundError, StlFormatError) as exc:
        logger.error("Cannot read %s: %s", args.path, exc)
        return 1
    logger.info("header: '%s'", stl.header_text)
    logger.info("num: %d", stl.triangle_count)

    try:
        mesh = build_mesh(stl.triangles, eps=args.eps)
    except (MeshGraphError, ValueError) as exc:
        logger.error("Cannot build mesh graph for %s: %s", args.path, exc)
        return 1
    logger.info("unique vertices: %d", mesh.vertex_count)

    if args.all_components:
        results = unfold_components(mesh)
    else:
        try:
            results = [traverse(mesh, args.root)]
        except TraversalError as exc:
            logger.error("%s", exc)
            return 1

    write_records(results, out)
    visited = sum(r.visited_count for r in results)
    if visited < mesh.face_count:
        logger.warning("Visited %d of %d faces", visited, mesh.face_count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
