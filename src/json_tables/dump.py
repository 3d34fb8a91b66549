"""Tool for dumping stored records to the console."""

from __future__ import annotations

import argparse
import copy
import json
import logging
import sys
from pathlib import Path
from typing import Any

from json_tables.config import StorageConfig
from json_tables.refs import map_refs
from json_tables.storage import JsonStorage
from json_tables.types import RefDescriptor, is_id


def resolve_record(storage: JsonStorage, type_name: str, record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a record with each reference id replaced by its record.

    Only one level is resolved. Ids without a stored record are kept.
    """

    def expand(value: Any, index: int | None, descriptor: RefDescriptor) -> Any:
        if not is_id(value):
            return value
        loaded = storage.load(descriptor.type_name, value)
        return value if loaded is None else loaded

    return map_refs(storage.registry, type_name, copy.deepcopy(record), expand)


def format_value(value: Any) -> str:
    """Format a field value for display."""
    if value is None:
        return "NULL"
    if isinstance(value, str):
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def list_tables(data_dir: Path) -> None:
    """List all data files in a directory."""
    print("Available tables:")
    print("-" * 40)
    for path in sorted(data_dir.glob("*.json")):
        with open(path, encoding="utf-8") as f:
            value = json.load(f)
        print(f"  {path.stem:<20} {len(value['data']):>6} records  (last id {value['id']})")


def dump_table(
    type_name: str,
    records: list[dict[str, Any]],
    limit: int | None = None,
) -> None:
    """Print records one field per line."""
    count = len(records)
    print(f"Table: {type_name}")
    print("-" * 60)
    print(f"Records: {count}")
    print()

    shown = records if limit is None else records[:limit]
    for record in shown:
        print(f"[{record.get('id')}]")
        for name, value in record.items():
            if name == "id":
                continue
            print(f"    {name}: {format_value(value)}")
        print()

    if limit is not None and count > limit:
        print(f"... ({count - limit} more records)")


def dump_table_json(records: list[dict[str, Any]], limit: int | None = None) -> None:
    """Print records as a JSON array."""
    shown = records if limit is None else records[:limit]
    print(json.dumps(shown, indent=2))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Dump stored JSON records to the console"
    )
    parser.add_argument(
        "data_dir",
        type=Path,
        help="Path to the data directory containing <type>.json files",
    )
    parser.add_argument(
        "table",
        nargs="?",
        help="Name of the type to dump (omit to list tables)",
    )
    parser.add_argument(
        "-s", "--schema",
        type=Path,
        default=None,
        help="Directory of schema documents, needed to resolve references",
    )
    parser.add_argument(
        "-r", "--resolve",
        action="store_true",
        help="Replace reference ids with the referenced records (one level)",
    )
    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "-n", "--limit",
        type=int,
        default=None,
        help="Limit number of records to display",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log storage activity",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.data_dir.exists():
        print(f"Error: Data directory not found: {args.data_dir}", file=sys.stderr)
        return 1

    try:
        storage = JsonStorage(StorageConfig(path=args.data_dir, schema=args.schema))
    except (OSError, ValueError) as e:
        print(f"Error loading schemas: {e}", file=sys.stderr)
        return 1

    if args.table is None:
        list_tables(args.data_dir)
        return 0

    if not storage.get_data_file(args.table).exists():
        print(f"Error: Unknown table/type: {args.table}", file=sys.stderr)
        print()
        list_tables(args.data_dir)
        return 1

    records = [entity.data for entity in storage.search(args.table)]
    if args.resolve:
        records = [resolve_record(storage, args.table, record) for record in records]

    if args.json:
        dump_table_json(records, args.limit)
    else:
        dump_table(args.table, records, args.limit)
    return 0


if __name__ == "__main__":
    sys.exit(main())
