# autonav/cli.py
"""
Command-line tool for inspecting saved waypoint path libraries.

    autonav-paths list paths.txt
    autonav-paths show paths.txt dock_run [--json]
    autonav-paths reverse paths.txt dock_run out.txt [--name dock_run_back]
    autonav-paths validate paths.txt [--config control.yaml]
"""

import argparse
import json
import logging
import sys

import numpy as np

from autonav.config import load_config
from autonav.navigation.path import PathLibrary
from autonav.utils.errors import UserError, format_error, format_info, format_success

logger = logging.getLogger(__name__)

# Tolerance for unit length and orthogonality of recorded frames
FRAME_TOLERANCE = 1e-3


def _load_library(filepath):
    try:
        return PathLibrary.load_file(filepath)
    except OSError as e:
        raise UserError(f"Cannot read {filepath}: {e.strerror}") from e


def frame_issues(frame):
    """List problems with a recorded frame's basis vectors."""
    issues = []
    for label, vector in (("forward", frame.forward), ("right", frame.right), ("up", frame.up)):
        if abs(np.linalg.norm(vector) - 1.0) > FRAME_TOLERANCE:
            issues.append(f"{label} is not unit length")
    for (a_label, a), (b_label, b) in (
        (("forward", frame.forward), ("right", frame.right)),
        (("forward", frame.forward), ("up", frame.up)),
        (("right", frame.right), ("up", frame.up)),
    ):
        if abs(float(np.dot(a, b))) > FRAME_TOLERANCE:
            issues.append(f"{a_label} and {b_label} are not orthogonal")
    return issues


def cmd_list(args):
    library = _load_library(args.file)
    if not len(library):
        print(format_info(f"No paths in {args.file}"))
        return 0
    for path in library:
        docking = sum(1 for wp in path.waypoints if wp.is_docking)
        print(f"{path.name}: {len(path)} waypoints, {docking} docking, speed {path.speed:.2f}")
    return 0


def cmd_show(args):
    library = _load_library(args.file)
    path = library.require(args.name)
    if args.json:
        print(json.dumps(path.to_dict(precision=4), indent=2))
    else:
        print(path.describe())
    return 0


def cmd_reverse(args):
    library = _load_library(args.file)
    path = library.require(args.name)
    reversed_path = path.reversed_copy(args.name_out or f"{path.name}_reversed")

    output = PathLibrary()
    output.add(reversed_path)
    output.save_file(args.output)
    print(format_success(f"Wrote '{reversed_path.name}'", {
        "waypoints": len(reversed_path),
        "file": args.output,
    }))
    return 0


def cmd_validate(args):
    if args.config:
        load_config(args.config)
        print(format_success(f"Config {args.config} is valid"))

    library = _load_library(args.file)
    if not len(library):
        print(format_error("NO_PATHS", f"No readable paths in {args.file}",
                           "Check the file was written by a path recorder"))
        return 1

    problems = 0
    for path in library:
        for index, waypoint in enumerate(path.waypoints):
            for issue in frame_issues(waypoint.frame):
                problems += 1
                print(format_error("BAD_FRAME", f"{path.name} WP{index}: {issue}"))

    if problems:
        return 1
    print(format_success(f"{len(library)} paths valid", {"paths": ", ".join(library.names())}))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(description="Waypoint path library tool")
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command')
    subparsers.required = True

    list_parser = subparsers.add_parser('list', help='List paths in a library file')
    list_parser.add_argument('file', help='Path library file')
    list_parser.set_defaults(func=cmd_list)

    show_parser = subparsers.add_parser('show', help='Show the waypoints of one path')
    show_parser.add_argument('file', help='Path library file')
    show_parser.add_argument('name', help='Path name')
    show_parser.add_argument('--json', action='store_true', help='Print as JSON')
    show_parser.set_defaults(func=cmd_show)

    reverse_parser = subparsers.add_parser('reverse', help='Write a path with its waypoints reversed')
    reverse_parser.add_argument('file', help='Path library file')
    reverse_parser.add_argument('name', help='Path name')
    reverse_parser.add_argument('output', help='Output library file')
    reverse_parser.add_argument('--name', dest='name_out', help='Name of the reversed path')
    reverse_parser.set_defaults(func=cmd_reverse)

    validate_parser = subparsers.add_parser('validate', help='Check every recorded frame')
    validate_parser.add_argument('file', help='Path library file')
    validate_parser.add_argument('--config', help='Control config file (.yaml/.json) to check as well')
    validate_parser.set_defaults(func=cmd_validate)

    return parser


def main(argv=None):
    """
    Main entry point for the CLI
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        return args.func(args)
    except UserError as e:
        logger.debug(f"{args.command} failed: {e}")
        print(format_error(type(e).__name__, str(e)))
        return 1
    except OSError as e:
        print(format_error("IO_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
