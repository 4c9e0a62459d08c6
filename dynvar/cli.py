# Copyright 2025 Ralph Lemke
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Dynvar command-line interface."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import CYCLE_POLICIES, load_config
from .emitter import JSONEmitter
from .parser import DynvarParser, ParseError
from .runtime.errors import DependencyCycleError, DynvarError
from .runtime.loader import load_installation
from .validator import validate

# Known subcommands for routing
_SUBCOMMANDS = {"compile", "resolve"}

# Blocker token for names overridden on the command line
_CLI_BLOCKER = "cli"


def _build_compile_parser(parser: argparse.ArgumentParser) -> None:
    """Add compile-specific arguments to *parser*."""

    parser.add_argument(
        "input",
        nargs="*",
        help="Input declaration file(s) (reads from stdin if not provided)",
    )

    parser.add_argument(
        "-o",
        "--output",
        help="Output file (writes to stdout if not provided)",
    )

    parser.add_argument(
        "--no-locations",
        action="store_true",
        help="Exclude source locations from output",
    )

    parser.add_argument(
        "--compact",
        action="store_true",
        help="Output compact JSON (no indentation)",
    )

    parser.add_argument(
        "--check",
        action="store_true",
        help="Check syntax and semantics only, don't emit JSON",
    )

    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip semantic validation",
    )

    parser.add_argument(
        "--cycle-policy",
        choices=list(CYCLE_POLICIES),
        default=None,
        help="How to order dynamic variables that depend on each other in a cycle "
        "(default: from config, else fallback)",
    )


def _build_resolve_parser(parser: argparse.ArgumentParser) -> None:
    """Add resolve-specific arguments to *parser*."""

    parser.add_argument(
        "input",
        help="Compiled installation JSON (or a declaration file with --source)",
    )

    parser.add_argument(
        "--source",
        action="store_true",
        help="Treat INPUT as a declaration file and compile it first",
    )

    parser.add_argument(
        "--set",
        action="append",
        dest="assignments",
        metavar="NAME=VALUE",
        help="Set a variable before refreshing (repeatable)",
    )

    parser.add_argument(
        "--block",
        action="append",
        dest="blocked",
        metavar="NAME",
        help="Keep NAME from being changed by dynamic variables (repeatable)",
    )

    parser.add_argument(
        "-o",
        "--output",
        help="Output file (writes to stdout if not provided)",
    )

    parser.add_argument(
        "--compact",
        action="store_true",
        help="Output compact JSON (no indentation)",
    )


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments shared by all subcommands."""
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Path to dynvar config file (JSON). "
        "Defaults to dynvar.config.json in cwd, ~/.dynvar/, or /etc/dynvar/",
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )

    parser.add_argument(
        "--log-file",
        default=None,
        metavar="FILE",
        help="Log to file instead of stderr",
    )


def _configure_logging(parsed: argparse.Namespace) -> None:
    """Set up logging from parsed CLI args."""
    log_handlers: list[logging.Handler] = []
    if parsed.log_file:
        log_handlers.append(logging.FileHandler(parsed.log_file))
    else:
        log_handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=getattr(logging, parsed.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=log_handlers,
    )


def _write_output(text: str, output: str | None) -> int:
    try:
        if output:
            Path(output).write_text(text + "\n")
        else:
            print(text)
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    return 0


# =========================================================================
# Compile handler
# =========================================================================


def _handle_compile(parsed: argparse.Namespace) -> int:
    """Execute the compile subcommand."""
    config = load_config(parsed.config)
    dv_parser = DynvarParser()

    try:
        if parsed.input:
            program = dv_parser.parse_files(parsed.input)
        else:
            program = dv_parser.parse(sys.stdin.read(), filename="<stdin>")
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return 1

    # Validate (unless skipped)
    if not parsed.no_validate and config.compiler.validate:
        result = validate(program)
        if not result.is_valid:
            for error in result.errors:
                print(f"Error: {error}", file=sys.stderr)
            return 1

    emitter = JSONEmitter(
        include_locations=not parsed.no_locations,
        indent=None if parsed.compact else 2,
        cycle_policy=parsed.cycle_policy or config.compiler.cycle_policy,
    )

    try:
        output = emitter.emit(program)
    except DependencyCycleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Check only mode
    if parsed.check:
        print(
            f"OK: {len(program.dynamics)} dynamic variable(s), "
            f"{len(program.conditions)} condition(s)",
            file=sys.stderr,
        )
        return 0

    return _write_output(output, parsed.output)


# =========================================================================
# Resolve handler
# =========================================================================


def _handle_resolve(parsed: argparse.Namespace) -> int:
    """Execute the resolve subcommand."""
    config = load_config(parsed.config)

    try:
        if parsed.source:
            program = DynvarParser().parse_file(parsed.input)
            result = validate(program)
            if not result.is_valid:
                for error in result.errors:
                    print(f"Error: {error}", file=sys.stderr)
                return 1
            data = JSONEmitter(
                include_locations=False, cycle_policy=config.compiler.cycle_policy
            ).emit_dict(program)
        else:
            data = json.loads(Path(parsed.input).read_text())
    except FileNotFoundError:
        print(f"Error: File not found: {parsed.input}", file=sys.stderr)
        return 1
    except (ParseError, DynvarError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading input: {e}", file=sys.stderr)
        return 1

    try:
        variables = load_installation(data, config.engine)
    except (ValueError, KeyError) as e:
        print(f"Error: Invalid installation document: {e}", file=sys.stderr)
        return 1

    for assignment in parsed.assignments or []:
        if "=" not in assignment:
            print(
                f"Error: Invalid assignment '{assignment}'. Expected format: NAME=VALUE",
                file=sys.stderr,
            )
            return 1
        name, value = assignment.split("=", 1)
        variables.set(name, value)

    variables.register_blocked_names(parsed.blocked, _CLI_BLOCKER)

    try:
        variables.refresh()
    except DynvarError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        variables.unregister_blocked_names(parsed.blocked, _CLI_BLOCKER)

    indent = None if parsed.compact else 2
    return _write_output(
        json.dumps(variables.properties(), indent=indent, sort_keys=True), parsed.output
    )


# =========================================================================
# Main entry point
# =========================================================================


def main(args: list[str] | None = None) -> int:
    """Main entry point for the dynvar CLI.

    Supports subcommands ``compile`` (default) and ``resolve``.
    If the first argument is not a known subcommand, ``compile`` is
    assumed.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    argv = args if args is not None else sys.argv[1:]

    subcommand = "compile"
    remaining = list(argv)
    if remaining and remaining[0] in _SUBCOMMANDS:
        subcommand = remaining[0]
        remaining = remaining[1:]

    if subcommand == "compile":
        parser = argparse.ArgumentParser(
            prog="dynvar compile",
            description="Compile dynamic variable declarations to an installation document",
        )
        _build_compile_parser(parser)
        _add_common_args(parser)
        parsed = parser.parse_args(remaining)
        _configure_logging(parsed)
        return _handle_compile(parsed)

    elif subcommand == "resolve":
        parser = argparse.ArgumentParser(
            prog="dynvar resolve",
            description="Resolve the variables of an installation document",
        )
        _build_resolve_parser(parser)
        _add_common_args(parser)
        parsed = parser.parse_args(remaining)
        _configure_logging(parsed)
        return _handle_resolve(parsed)

    # Should not reach here
    print(f"Unknown subcommand: {subcommand}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
