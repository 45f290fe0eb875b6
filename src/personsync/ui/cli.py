# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from personsync.app import (
    create_environment,
    import_posthog_persons,
    ingest_batch,
    list_attribute_classes,
    show_person,
)
from personsync.config import configure_logging
from personsync.domain.errors import BatchValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile identity records into environments")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log per-record decisions",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    environment = subparsers.add_parser("environment", help="Environment management commands")
    environment_sub = environment.add_subparsers(dest="environment_command", required=True)
    environment_create = environment_sub.add_parser("create", help="Create an environment")
    environment_create.add_argument(
        "--name",
        type=str,
        required=True,
        help="Human-readable environment name",
    )

    ingest = subparsers.add_parser("ingest", help="Reconcile a JSON batch file")
    ingest.add_argument("--environment-id", type=str, required=True)
    ingest.add_argument(
        "--file",
        type=str,
        required=True,
        help="Path to a JSON document shaped like {\"users\": [...]} ('-' reads stdin)",
    )
    ingest.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Records reconciled concurrently (defaults to config)",
    )
    ingest.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds after which no further records are scheduled",
    )

    posthog = subparsers.add_parser("posthog-import", help="Import persons from PostHog")
    posthog.add_argument("--environment-id", type=str, required=True)
    posthog.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Persons per API page and per reconciled batch (defaults to config)",
    )
    posthog.add_argument(
        "--max-persons",
        type=int,
        help="Maximum number of persons to fetch before stopping",
    )

    person = subparsers.add_parser("person", help="Person inspection commands")
    person_sub = person.add_subparsers(dest="person_command", required=True)
    person_show = person_sub.add_parser("show", help="Show a person by userId")
    person_show.add_argument("--environment-id", type=str, required=True)
    person_show.add_argument("--user-id", type=str, required=True)

    classes = subparsers.add_parser(
        "attribute-classes",
        help="List the attribute classes of an environment",
    )
    classes.add_argument("--environment-id", type=str, required=True)

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _validate_args(args: argparse.Namespace) -> None:
    if getattr(args, "environment_id", None) is not None:
        args.environment_id = _parse_uuid(args.environment_id)
    workers = getattr(args, "workers", None)
    if workers is not None and workers < 1:
        raise ValueError("--workers must be at least 1")
    timeout = getattr(args, "timeout", None)
    if timeout is not None and timeout < 0:
        raise ValueError("--timeout must be non-negative")
    batch_size = getattr(args, "batch_size", None)
    if batch_size is not None and batch_size < 1:
        raise ValueError("--batch-size must be at least 1")


def _load_payload(path: str) -> object:
    try:
        if path == "-":
            return json.load(sys.stdin)
        with Path(path).open(encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise BatchValidationError(f"{path} is not valid JSON: {exc}") from exc
    except OSError as exc:
        raise BatchValidationError(f"Cannot read {path}: {exc}") from exc


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, sort_keys=False))


def _dispatch(args: argparse.Namespace) -> int:
    if args.command == "environment" and args.environment_command == "create":
        environment = create_environment(args.name)
        _emit({"id": str(environment.id), "name": environment.name})
        return 0

    if args.command == "ingest":
        result = ingest_batch(
            args.environment_id,
            _load_payload(args.file),
            max_workers=args.workers,
            timeout=args.timeout,
        )
        _emit(result.to_payload())
        return 0 if result.ok else 1

    if args.command == "posthog-import":
        imported = import_posthog_persons(
            args.environment_id,
            batch_size=args.batch_size,
            max_persons=args.max_persons,
        )
        _emit(imported.to_payload())
        return 0 if imported.ok else 1

    if args.command == "person" and args.person_command == "show":
        subject = show_person(args.environment_id, args.user_id)
        if subject is None:
            log.error(
                "No person with userId %r in environment %s", args.user_id, args.environment_id
            )
            return 1
        _emit(
            {
                "id": str(subject.id),
                "userId": subject.natural_key,
                "attributes": dict(subject.values()),
            }
        )
        return 0

    if args.command == "attribute-classes":
        classes = list_attribute_classes(args.environment_id)
        _emit([{"id": str(item.id), "name": item.name, "type": str(item.type)} for item in classes])
        return 0

    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate_args(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        exit_code = _dispatch(parsed_args)
    except BatchValidationError as exc:
        log.error("%s", exc)  # noqa: TRY400
        for problem in exc.problems:
            log.error("  %s", problem)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
