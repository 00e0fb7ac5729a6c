"""Command-line entry point: ``jstrace [file]``."""

from __future__ import annotations

import argparse
import logging
import sys

from . import constants
from .api import dump_trace, trace_source, trace_to_json

DEMO_SOURCE = """\
console.log("start");

setTimeout(() => console.log("timeout"), 0);

Promise.resolve()
  .then(() => console.log("promise 1"))
  .then(() => console.log("promise 2"));

function factorial(n) {
  if (n <= 1) {
    return 1;
  }
  return n * factorial(n - 1);
}

const result = factorial(4);
console.log("factorial:", result);
"""


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jstrace",
        description="Trace a JavaScript program step by step",
    )
    parser.add_argument("file", nargs="?", help="JavaScript file to trace")
    parser.add_argument(
        "--max-steps",
        "-n",
        type=int,
        default=constants.MAX_STEPS,
        help=f"Execution step ceiling (default: {constants.MAX_STEPS})",
    )
    parser.add_argument(
        "--max-trace-steps",
        type=int,
        default=constants.TRUNCATION_LIMIT,
        help=f"Truncate the trace after this many steps (default: {constants.TRUNCATION_LIMIT})",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the trace as camelCase JSON"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log interpreter activity"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if not args.file:
        source = DEMO_SOURCE
        if not args.json:
            print("No file provided. Using built-in demo:\n")
            print(source)
    else:
        with open(args.file, encoding="utf-8") as f:
            source = f.read()

    result = trace_source(
        source, max_steps=args.max_steps, max_trace_steps=args.max_trace_steps
    )
    print(trace_to_json(result) if args.json else dump_trace(result))
    return 1 if result.error else 0


if __name__ == "__main__":
    sys.exit(main())
