#!/usr/bin/env python3
import argparse
import logging
import sys

import spvguard
from spvguard.exceptions import SpvguardException
from spvguard.ir import optimize_source
from spvguard.ir.passes import PASS_REGISTRY
from spvguard.settings import MAX_ID_WORD, SPVGUARD_LOG_LEVEL, Settings, log_level_from_string


def _id_bound(val: str) -> int:
    try:
        bound = int(val)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid id bound: {val}") from None
    if not 0 < bound <= MAX_ID_WORD:
        raise argparse.ArgumentTypeError(f"id bound out of range (1..{MAX_ID_WORD}): {val}")
    return bound


def _parse_cli_args():
    sys.exit(_parse_args(sys.argv[1:]))


def _parse_args(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(
        description="Apply driver workaround passes to SPIR-V assembly",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("input_file", help="SPIR-V assembly file (default: stdin)", nargs="?")
    parser.add_argument("-o", help="output file (default: stdout)", dest="output_file")
    parser.add_argument("--version", action="version", version=spvguard.__version__)
    for name in PASS_REGISTRY:
        parser.add_argument(
            f"--{name}",
            help=f"run the {name} pass (passes run in command line order)",
            action="append_const",
            const=name,
            dest="passes",
        )
    parser.add_argument(
        "--validate", help="check the module after running the passes", action="store_true"
    )
    parser.add_argument("--max-id-bound", help="upper limit of the id bound", type=_id_bound)
    parser.add_argument(
        "--log-level",
        help=f"diagnostics level (default {SPVGUARD_LOG_LEVEL})",
        default=SPVGUARD_LOG_LEVEL,
    )

    args = parser.parse_args(argv)

    try:
        log_level = log_level_from_string(args.log_level)
    except ValueError as e:
        parser.error(str(e))
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    settings = Settings(max_id_bound=args.max_id_bound, validate=args.validate or None)

    if args.input_file is None:
        if not sys.stdin.isatty():
            source = sys.stdin.read()
        else:
            # No input provided
            print("Error: No input provided", file=sys.stderr)
            return 1
    else:
        try:
            with open(args.input_file, "r") as f:
                source = f.read()
        except OSError as e:
            print(f"Error: Unable to read file '{args.input_file}': {e.strerror}", file=sys.stderr)
            return 1

    try:
        ctx, status = optimize_source(source, args.passes or [], settings)
    except SpvguardException as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ExceptionGroup as eg:
        for e in eg.exceptions:
            print(f"Error: {e}", file=sys.stderr)
        return 1

    if status.is_failure:
        print("Error: optimization failed", file=sys.stderr)
        return 1

    if args.output_file is None:
        sys.stdout.write(repr(ctx))
    else:
        with open(args.output_file, "w") as f:
            f.write(repr(ctx))

    return 0


if __name__ == "__main__":
    _parse_cli_args()
