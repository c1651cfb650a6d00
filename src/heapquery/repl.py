"""Command line and interactive REPL for querying heap snapshots."""

from __future__ import annotations

import argparse
import logging
import readline  # noqa: F401 - enables line editing in input()
import sys
from pathlib import Path
from typing import Any

from heapquery.config import ImportOptions
from heapquery.errors import HeapQueryError
from heapquery.importer import open_database
from heapquery.parsing import is_complete, split_statements
from heapquery.query_executor import QueryExecutor, QueryResult
from heapquery.storage import DEFAULT_BATCH_SIZE


def format_value(value: Any, max_width: int = 40) -> str:
    """Format a value for display.

    Args:
        value: The value to format
        max_width: Maximum character width before truncating
    """
    if value is None:
        return "NULL"
    elif isinstance(value, int):
        return str(value)
    elif isinstance(value, float):
        return f"{value:.6g}"
    elif isinstance(value, bytes):
        return f"<{len(value)} bytes>"
    elif isinstance(value, str):
        if len(value) > max_width:
            return repr(value[:max_width - 3] + "...")
        return repr(value)
    else:
        s = str(value)
        if len(s) > max_width:
            return s[:max_width - 3] + "..."
        return s


def print_result(result: QueryResult) -> None:
    """Print query results in a formatted table."""
    if result.message:
        print(result.message)
        return

    if not result.rows:
        print("(no results)")
        return

    # Calculate column widths
    col_widths = {}
    for col in result.columns:
        col_widths[col] = len(col)

    for row in result.rows:
        for col in result.columns:
            val = format_value(row.get(col))
            col_widths[col] = max(col_widths[col], len(val))

    # Cap column widths
    max_col_width = 40
    for col in col_widths:
        col_widths[col] = min(col_widths[col], max_col_width)

    header = " | ".join(col.ljust(col_widths[col])[:col_widths[col]] for col in result.columns)
    print(header)
    print("-" * len(header))

    for row in result.rows:
        values = []
        for col in result.columns:
            val = format_value(row.get(col))
            if len(val) > col_widths[col]:
                val = val[: col_widths[col] - 3] + "..."
            values.append(val.ljust(col_widths[col]))
        print(" | ".join(values))

    print(f"\n({len(result.rows)} row{'s' if len(result.rows) != 1 else ''})")


def print_help() -> None:
    """Print help information."""
    print("""
Queries are SQL, ended with a semicolon. They may span several lines.

Tables:
  node(ordinal, id, type, name, self_size, edge_count, trace_node_id, detachedness)
  edge(from_node, position, type, name_or_index, to_node)
  location(node, script_id, line, col)

  edge.from_node and edge.to_node hold node ordinals; join them with node.ordinal.

Commands:
  .tables                     List tables
  .schema [table]             Show CREATE statements
  help                        Show this help
  exit, quit                  Leave the REPL

Examples:
  select * from node where name = 'HugeObj';
  select type, count(*), sum(self_size) from node group by type order by 3 desc;
  select n.name, e.name_or_index from edge e join node n on n.ordinal = e.to_node
    where e.from_node = 0;
""")


def run_command(executor: QueryExecutor, line: str) -> bool:
    """Run a dot command. Returns False if ``line`` is not one."""
    words = line.split()
    if not words or not words[0].startswith("."):
        return False

    command = words[0].lower()
    if command == ".tables":
        for name in executor.tables():
            print(name)
    elif command == ".schema":
        names = words[1:] or executor.tables()
        for name in names:
            sql = executor.store.table_sql(name)
            if sql is None:
                print(f"Error: no such table: {name}")
            else:
                print(f"{sql};")
    else:
        print(f"Error: unknown command {words[0]}")
    return True


def run_repl(executor: QueryExecutor, heap_file: Path) -> int:
    """Run the interactive REPL."""
    print("heapquery - SQL over V8 heap snapshots")
    print(f"Snapshot: {heap_file}")
    print("Type 'help' for commands, 'exit' to quit.\n")

    history_file = Path.home() / ".heapquery_history"
    try:
        readline.read_history_file(history_file)
    except OSError:
        pass

    try:
        while True:
            try:
                line = input("sql> ").strip()
            except EOFError:
                print()
                break

            if not line:
                continue

            lower = line.lower()
            if lower in ("exit", "quit"):
                break
            elif lower == "help":
                print_help()
                continue

            try:
                if run_command(executor, line):
                    print()
                    continue

                # Keep reading until the statement is terminated
                while not is_complete(line):
                    try:
                        continuation = input("...> ")
                    except EOFError:
                        break
                    if not continuation.strip():
                        # Empty line cancels continuation
                        break
                    line += "\n" + continuation

                for result in executor.execute_script(line):
                    print_result(result)
            except HeapQueryError as e:
                print(f"Error: {e}")
            print()
    except KeyboardInterrupt:
        print()
    finally:
        try:
            readline.write_history_file(history_file)
        except OSError:
            pass

    return 0


def run_file(executor: QueryExecutor, file_path: Path, verbose: bool = False) -> int:
    """Execute SQL statements from a file.

    Args:
        executor: Executor bound to the loaded database
        file_path: Path to the file containing SQL
        verbose: If True, print each statement before executing

    Returns:
        0 on success, 1 on error
    """
    try:
        content = file_path.read_text()
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    try:
        statements = split_statements(content)
    except SyntaxError as e:
        print(f"Syntax error: {e}", file=sys.stderr)
        return 1

    if not statements:
        print("No statements found in file", file=sys.stderr)
        return 1

    for statement in statements:
        if verbose:
            for i, line in enumerate(statement.split("\n")):
                prefix = ">>> " if i == 0 else "... "
                print(f"{prefix}{line}")
        try:
            print_result(executor.execute(statement))
        except HeapQueryError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        prog="heapquery",
        description="Query the objects on the heap of node.js with SQL",
    )
    arg_parser.add_argument(
        "--heap",
        type=Path,
        required=True,
        help="The heap file produced from `v8.getHeapSnapshot` (optionally gzipped)",
    )
    arg_parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Database file (default: <heap file stem>.db3 next to the heap file)",
    )
    arg_parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Re-import the heap file even if its database already exists",
    )
    arg_parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Rows inserted per batch (default: {DEFAULT_BATCH_SIZE})",
    )
    arg_parser.add_argument(
        "-q", "--query",
        type=str,
        help="The SQL to query your data",
    )
    arg_parser.add_argument(
        "-f", "--file",
        type=Path,
        help="Execute SQL statements from a file and exit",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress (-v) or debug details (-vv)",
    )

    args = arg_parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.file and not args.file.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return 1

    options = ImportOptions.from_args(args)
    if not options.heap_file.exists() and not options.db_path.exists():
        print(f"Error: Heap file not found: {options.heap_file}", file=sys.stderr)
        return 1

    try:
        executor = open_database(options)
    except (HeapQueryError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.file:
            return run_file(executor, args.file, verbose=args.verbose > 0)

        if args.query:
            try:
                for result in executor.execute_script(args.query):
                    print_result(result)
            except HeapQueryError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            return 0

        if not sys.stdin.isatty():
            # Piped input: run it as a script
            try:
                for result in executor.execute_script(sys.stdin.read()):
                    print_result(result)
            except HeapQueryError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            return 0

        return run_repl(executor, options.heap_file)
    finally:
        executor.store.close()


if __name__ == "__main__":
    sys.exit(main())
