#!/usr/bin/env python3
"""
CLI for the wox interpreter.

Usage:
    python -m wox                     # interactive prompt
    python -m wox FILE.wox            # run a script
    python -m wox FILE.wox --tokens   # dump the token stream
    python -m wox FILE.wox --ast      # print the canonical source form
    python -m wox FILE.wox --sexpr    # print the s-expression form

Exit codes follow sysexits.h:
    0   success
    64  usage or configuration error
    65  syntax error (nothing is executed)
    66  script not found
    70  runtime error, or fatal stack exhaustion

Examples:
    # Run with a config file and debug logging
    python -m wox shapes.wox --config wox.yaml --verbose
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

EX_OK = 0
EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66
EX_SOFTWARE = 70

QUIT_COMMANDS = (":q", ":Q")

logger = logging.getLogger("wox")


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad usage; wox uses EX_USAGE."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EX_USAGE, f"{self.prog}: error: {message}\n")


def _report(diagnostics, config) -> None:
    print(diagnostics.format_all(config.show_source), file=sys.stderr)


def _fatal(error: RecursionError) -> None:
    print(f"fatal: stack overflow ({error})", file=sys.stderr)


def cmd_tokens(source: str, filename: str, config) -> int:
    """Print one token per line."""
    from . import tokenize, DiagnosticCollector

    diagnostics = DiagnosticCollector(max_errors=config.max_errors)
    for token in tokenize(source, filename, diagnostics):
        print(f"{token.span.start}\t{token}")

    if diagnostics.had_syntax_error:
        _report(diagnostics, config)
        return EX_DATAERR
    return EX_OK


def run_file(path: str, config, mode: Optional[str] = None) -> int:
    """Run (or dump) a script; returns the process exit code."""
    from . import scan_and_parse, format_source, to_sexpr, Interpreter, DiagnosticCollector

    source_path = Path(path)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return EX_NOINPUT

    source = source_path.read_text(encoding="utf-8")
    filename = str(source_path)

    if mode == "tokens":
        return cmd_tokens(source, filename, config)

    diagnostics = DiagnosticCollector(max_errors=config.max_errors)
    try:
        statements, diagnostics = scan_and_parse(source, filename, diagnostics)
    except RecursionError as e:
        _fatal(e)
        return EX_SOFTWARE
    if diagnostics.had_syntax_error:
        _report(diagnostics, config)
        return EX_DATAERR

    if mode == "ast":
        print(format_source(statements))
        return EX_OK
    if mode == "sexpr":
        print(to_sexpr(statements))
        return EX_OK

    interpreter = Interpreter(diagnostics=diagnostics)
    try:
        interpreter.interpret(statements, source=source)
    except RecursionError as e:
        _fatal(e)
        return EX_SOFTWARE

    if diagnostics.had_runtime_error:
        _report(diagnostics, config)
        return EX_SOFTWARE
    return EX_OK


def run_line(interpreter, line: str, config) -> None:
    """Run one line of interactive input against a persistent interpreter."""
    from . import scan_and_parse

    # One bad line must not poison the next
    diagnostics = interpreter.diagnostics
    diagnostics.reset()

    try:
        statements, diagnostics = scan_and_parse(line, None, diagnostics)
        if diagnostics.had_syntax_error:
            _report(diagnostics, config)
            return
        interpreter.interpret(statements, source=line)
    except RecursionError as e:
        _fatal(e)
        return

    if diagnostics.had_runtime_error:
        _report(diagnostics, config)


def run_prompt(config) -> int:
    """Read-eval-print loop; definitions persist across lines."""
    from . import Interpreter, DiagnosticCollector

    interpreter = Interpreter(diagnostics=DiagnosticCollector(max_errors=config.max_errors))

    while True:
        try:
            line = input(config.prompt)
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print()
            continue

        if line.strip() in QUIT_COMMANDS:
            print("Quitting...")
            break

        run_line(interpreter, line, config)

    return EX_OK


def main(argv: Optional[List[str]] = None) -> int:
    from .config import WoxConfig, ConfigError, load_config

    parser = _ArgumentParser(
        prog='wox',
        description='wox interpreter',
    )
    parser.add_argument('script', nargs='?', help='wox source file (omit for an interactive prompt)')
    parser.add_argument('-c', '--config', metavar='FILE', help='YAML configuration file')
    dump = parser.add_mutually_exclusive_group()
    dump.add_argument('--tokens', action='store_const', const='tokens', dest='mode',
                      help='Print the token stream instead of running')
    dump.add_argument('--ast', action='store_const', const='ast', dest='mode',
                      help='Print the parsed program as canonical source instead of running')
    dump.add_argument('--sexpr', action='store_const', const='sexpr', dest='mode',
                      help='Print the parsed program as s-expressions instead of running')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else WoxConfig()
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EX_USAGE

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if config.recursion_limit is not None:
        sys.setrecursionlimit(config.recursion_limit)

    if args.mode and not args.script:
        parser.error(f"--{args.mode} needs a script")

    if args.script:
        logger.debug("running %s", args.script)
        return run_file(args.script, config, args.mode)
    return run_prompt(config)


if __name__ == '__main__':
    sys.exit(main())
