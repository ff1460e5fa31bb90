"""Command line interface for checking and ordering declaration files."""

import argparse
import json
import logging
import sys

from infra_graph._emit import emit
from infra_graph._entities import Entity
from infra_graph._errors import (
    CycleError,
    DeclarationError,
    DuplicateNameError,
    UnresolvedReferenceError,
    ValidationFailed,
)
from infra_graph._loader import dump_document, load_declarations
from infra_graph._resolver import resolve
from infra_graph._validator import validate


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Return parsed command line arguments."""

    parser = argparse.ArgumentParser(
        prog="infra-graph",
        description="Validate and order declarative infrastructure entity graphs.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    check_cmd = commands.add_parser("check", help="Report every problem in a declaration file")
    check_cmd.add_argument("path", help="YAML or JSON declaration file")

    order_cmd = commands.add_parser("order", help="Print entities in creation order")
    order_cmd.add_argument("path", help="YAML or JSON declaration file")

    emit_cmd = commands.add_parser("emit", help="Print the validated, ordered document")
    emit_cmd.add_argument("path", help="YAML or JSON declaration file")
    emit_cmd.add_argument("--json", dest="json_path", help="Write the document as JSON to this path")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point used by ``infra-graph`` and ``python -m infra_graph``."""

    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        entities = load_declarations(args.path)
    except DeclarationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.command == "check":
        return _check(entities)

    try:
        if args.command == "order":
            for entity in resolve(entities):
                print(f"{entity.kind.value:<16} {entity.id}")
            return 0

        emission = emit(entities)
    except ValidationFailed as exc:
        for error in exc.errors:
            print(error, file=sys.stderr)
        return 1
    except (CycleError, DuplicateNameError, UnresolvedReferenceError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json_path:
        with open(args.json_path, "w", encoding="utf-8") as fh:
            json.dump(emission.to_document(), fh, indent=2)
        print(f"Document written to {args.json_path}")
    else:
        sys.stdout.write(dump_document(emission) or "")
    return 0


def _check(entities: list[Entity]) -> int:
    """Print constraint and resolution problems together; 1 if there are any."""

    problems: list[str] = [str(error) for error in validate(entities)]
    try:
        resolve(entities)
    except (CycleError, DuplicateNameError, UnresolvedReferenceError) as exc:
        # A repeated identifier is reported by both passes.
        if str(exc) not in problems:
            problems.append(str(exc))

    if problems:
        for problem in problems:
            print(problem, file=sys.stderr)
        noun = "problem" if len(problems) == 1 else "problems"
        print(f"{len(problems)} {noun} found in {len(entities)} entities", file=sys.stderr)
        return 1

    print(f"OK: {len(entities)} entities, no problems found")
    return 0


__all__ = ["main", "parse_args"]
