from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

import requests
from dotenv import load_dotenv

from .framer_client import DEFAULT_API_BASE, FramerClient, FramerConfig
from .io import MappingInputError, read_json_array_file, read_json_file, write_json
from .mapping import merge_fields_with_existing_fields
from .normalize import build_reference_map, normalize_columns, normalize_rows
from .sync import CollectionNotFoundError, list_collections, list_item_ids, publish_project, push_rows
from .transform import transform


def load_env(dotenv_path: Optional[str]) -> None:
    if dotenv_path is None:
        # try default .env in cwd if present
        default_env = Path.cwd() / ".env"
        if default_env.exists():
            load_dotenv(default_env)
        return
    p = Path(dotenv_path)
    if p.exists():
        load_dotenv(p)


def fail(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def get_config(args: argparse.Namespace) -> FramerConfig:
    project_url = args.project_url or os.getenv("FRAMER_PROJECT_URL")
    api_key = args.api_key or os.getenv("FRAMER_API_KEY")
    api_base = args.api_base or os.getenv("FRAMER_API_BASE", DEFAULT_API_BASE)

    missing = []
    if not project_url:
        missing.append("--project-url or FRAMER_PROJECT_URL")
    if not api_key:
        missing.append("--api-key or FRAMER_API_KEY")
    if missing:
        fail(f"Missing required config: {', '.join(missing)}")

    return FramerConfig(project_url=project_url.strip(), api_key=api_key.strip(), api_base=api_base)


def emit(data: Any, output: Optional[str] = None) -> None:
    if output:
        write_json(Path(output), data)
        logging.getLogger(__name__).info(f"Wrote {output}")
        return
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _reference_entries(path: Optional[str]) -> Optional[List[Any]]:
    return read_json_array_file(Path(path), "referenceMap") if path else None


def cmd_map(args: argparse.Namespace) -> int:
    columns = read_json_array_file(Path(args.columns), "columns")
    rows = read_json_array_file(Path(args.rows), "rows")
    result = transform(
        columns,
        rows,
        args.slug_field,
        reference_entries=_reference_entries(args.reference_map),
        use_12_hour_time=args.use_12_hour_time,
    )
    if args.existing_fields:
        existing = read_json_array_file(Path(args.existing_fields), "existingFields")
        result.fields = merge_fields_with_existing_fields(
            result.fields,
            [f for f in existing if isinstance(f, dict)],
            result.warnings,
        )
    emit(result.to_dict(), args.output)
    return 0


def cmd_push(args: argparse.Namespace, client: FramerClient) -> int:
    columns = normalize_columns(read_json_array_file(Path(args.columns), "columns"))
    if args.row:
        rows = normalize_rows([read_json_file(Path(args.row), "row")])
    else:
        rows = normalize_rows(read_json_array_file(Path(args.rows), "rows"))
    result = push_rows(
        client,
        args.collection,
        args.slug_field,
        columns,
        rows,
        reference_map=build_reference_map(_reference_entries(args.reference_map)),
        use_12_hour_time=args.use_12_hour_time,
        prune_missing=args.prune_missing,
        single_row=bool(args.row),
    )
    emit(result.to_dict())
    return 0


def cmd_publish(args: argparse.Namespace, client: FramerClient) -> int:
    emit(publish_project(client).to_dict())
    return 0


def cmd_collections(args: argparse.Namespace, client: FramerClient) -> int:
    emit([c.to_dict() for c in list_collections(client)])
    return 0


def cmd_items(args: argparse.Namespace, client: FramerClient) -> int:
    emit(list_item_ids(client, args.collection_id))
    return 0


REMOTE_COMMANDS = {
    "push": cmd_push,
    "publish": cmd_publish,
    "collections": cmd_collections,
    "items": cmd_items,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Map Coda tables onto Framer managed collections")
    p.add_argument("--project-url", help="Framer project URL (or set FRAMER_PROJECT_URL)")
    p.add_argument("--api-key", help="Framer API key (or set FRAMER_API_KEY)")
    p.add_argument("--api-base", help=f"Framer API base URL (default: {DEFAULT_API_BASE})")
    p.add_argument("--dotenv", help="Path to .env file (optional)")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v for INFO, -vv for DEBUG)")

    sub = p.add_subparsers(dest="command", required=True)

    m = sub.add_parser("map", help="Map columns and rows to fields and items without contacting Framer")
    m.add_argument("--columns", required=True, help="JSON file with the Coda column array")
    m.add_argument("--rows", required=True, help="JSON file with the Coda row array")
    m.add_argument("--slug-field", required=True, help="Column id whose value becomes the item slug")
    m.add_argument("--reference-map", help="JSON file with [{codaTableId, framerCollectionId}] entries")
    m.add_argument("--existing-fields", help="JSON file with the collection's current fields to merge names from")
    m.add_argument("--use-12-hour-time", action="store_true", help="Render time columns as h:mm AM/PM")
    m.add_argument("--output", help="Write the result JSON here instead of stdout")

    ps = sub.add_parser("push", help="Push rows into a managed collection (created when missing)")
    ps.add_argument("--collection", required=True, help="Managed collection name")
    ps.add_argument("--slug-field", required=True, help="Column id whose value becomes the item slug")
    ps.add_argument("--columns", required=True, help="JSON file with the Coda column array")
    rows = ps.add_mutually_exclusive_group(required=True)
    rows.add_argument("--rows", help="JSON file with the Coda row array")
    rows.add_argument("--row", help="JSON file with a single Coda row")
    ps.add_argument("--reference-map", help="JSON file with [{codaTableId, framerCollectionId}] entries")
    ps.add_argument("--prune-missing", action="store_true", help="Remove remote items not present in this push")
    ps.add_argument("--use-12-hour-time", action="store_true", help="Render time columns as h:mm AM/PM")

    sub.add_parser("publish", help="Publish and deploy pending changes")
    sub.add_parser("collections", help="List managed collections")

    it = sub.add_parser("items", help="List item ids of a managed collection")
    it.add_argument("--collection-id", required=True, help="Managed collection id")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    # Setup logging
    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    log = logging.getLogger(__name__)
    load_env(args.dotenv)

    try:
        if args.command == "map":
            return cmd_map(args)
        cfg = get_config(args)
        log.info(f"Using project={cfg.project_url} api_base={cfg.base_url}")
        return REMOTE_COMMANDS[args.command](args, FramerClient(cfg))
    except (MappingInputError, CollectionNotFoundError, requests.HTTPError) as e:
        fail(str(e))
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
