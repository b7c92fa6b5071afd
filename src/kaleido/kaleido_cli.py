"""
Kaleido CLI Entrypoint.

This module provides the command-line interface of the Kaleido front end. The
flags only choose which intermediate artifact is displayed; tokenizing and
parsing are identical for every choice.

Features:
    - Read source from `.kal` files or inline strings, or open the REPL.
    - Show the token stream (`-l`), the AST (`-p`), or the stack-machine listing (`-a`, default).
    - Load session settings from a JSON file (`-c`, or the `KALEIDO_CONFIG` environment variable).

Example usage:
    kaleido
    kaleido --lexer
    kaleido -p -s "def add(a, b) a + b"
    kaleido program.kal -a
    kaleido -c session.json --verbose

Functions:
    load_config(path: str | None) -> SessionConfig:
        Loads the JSON configuration, falling back to `KALEIDO_CONFIG` and then to defaults.

    run_kaleido(source: str, is_string: bool = False, config: SessionConfig | None = None) -> Session:
        Feeds a file or string through a batch session line by line.

    main(argv: list[str] | None = None) -> None:
        Parses CLI arguments and dispatches to the REPL or batch mode.
"""

import argparse
import os
import sys

from kaleido.kaleido_config import ConfigError, SessionConfig
from kaleido.kaleido_repl import Session, run_lines, start_repl

CONFIG_ENV = "KALEIDO_CONFIG"


def load_config(path: str | None = None) -> SessionConfig:
    """
    Loads the session configuration.

    Args:
        path (str | None): Path to a JSON config. If None, `KALEIDO_CONFIG` is consulted.

    Returns:
        SessionConfig: The loaded configuration, or the defaults when no file is given.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    path = path or os.getenv(CONFIG_ENV)
    if not path:
        return SessionConfig()
    return SessionConfig.load_from_json(path)


def run_kaleido(
    source: str, is_string: bool = False, config: SessionConfig | None = None
) -> Session:
    """
    Run Kaleido source through a batch session.

    Args:
        source (str): Kaleido source text or path to a `.kal` file.
        is_string (bool): If True, treats `source` as raw code instead of a file path.
        config (SessionConfig | None): Session settings, including the output stage.

    Returns:
        Session: The finished session, holding the accumulated AST.

    Raises:
        ValueError: If `is_string` is False and the source does not end with '.kal'.
    """
    if not is_string and not source.endswith(".kal"):
        raise ValueError("Only .kal files are supported.")
    if not is_string:
        with open(source, encoding="utf-8") as f:
            source = f.read()

    return run_lines(source.splitlines(), config)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kaleido", description="Kaleido compiler.")
    parser.add_argument("source", nargs="?", help="Filename or raw source (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    stage = parser.add_mutually_exclusive_group()
    stage.add_argument(
        "-l",
        "--lexer",
        dest="stage",
        action="store_const",
        const="tokens",
        help="Run only the lexer and show its output",
    )
    stage.add_argument(
        "-p",
        "--parser",
        dest="stage",
        action="store_const",
        const="ast",
        help="Run till the parser and show its output",
    )
    stage.add_argument(
        "-a",
        "--assembly",
        dest="stage",
        action="store_const",
        const="asm",
        help="Run till the listing builder and show its output",
    )
    parser.add_argument("-c", "--config", metavar="FILE", help="JSON session config")
    parser.add_argument("--verbose", action="store_true", help="Verbose REPL mode")
    return parser


def main(argv: list[str] | None = None) -> None:
    """
    Entry point for the Kaleido CLI.

    - Launches the REPL if no source is given.
    - Otherwise feeds the file (or `-s` string) through a batch session.

    Exits with status 2 when the configuration is invalid.
    """
    args = build_arg_parser().parse_args(argv)

    try:
        config = load_config(args.config).with_overrides(stage=args.stage)
    except ConfigError as e:
        print(f"[config error] >>> {e}", file=sys.stderr)
        for problem in e.problems:
            print(f" - {problem}", file=sys.stderr)
        sys.exit(2)

    if args.source is None:
        start_repl(config=config, verbose=args.verbose)
    else:
        run_kaleido(source=args.source, is_string=args.string, config=config)


if __name__ == "__main__" and not any("pytest" in arg for arg in sys.argv):
    main()
