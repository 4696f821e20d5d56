"""
CLI utility for memory database maintenance.

Usage:
    agent-memory --stats
    agent-memory --purge idf,working
    agent-memory --purge all --db data/memory/memory.db
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from agent_memory.persist import MemoryDatabase

TABLE_ALIASES = {
    "working": "memory_items",
    "vector": "vector_memories",
    "idf": "idf_cache",
}


def format_bytes(bytes_val: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "KB", "MB", "GB"]:
        if bytes_val < 1024:
            return f"{bytes_val:.1f} {unit}"
        bytes_val /= 1024
    return f"{bytes_val:.1f} TB"


def show_stats(db_path: Path) -> int:
    """
    Display row counts and stored sizes per table.

    Args:
        db_path: SQLite memory database
    """
    if not db_path.exists():
        print(f"❌ Memory database not found: {db_path}")
        return 1

    print(f"📊 Memory Statistics: {db_path}\n")

    with MemoryDatabase(db_path) as db:
        print(f"{'Table':<10} {'SQL table':<18} {'Count':>10} {'Size':>12}")
        print("=" * 54)

        total_count = 0
        total_bytes = 0

        for alias, table in TABLE_ALIASES.items():
            stats = db.stats(table)
            total_count += stats["count"]
            total_bytes += stats["total_bytes"]
            print(f"{alias:<10} {table:<18} {stats['count']:>10,} {format_bytes(stats['total_bytes']):>12}")

        print("=" * 54)
        print(f"{'TOTAL':<29} {total_count:>10,} {format_bytes(total_bytes):>12}")
        print()

    return 0


def purge_tables(db_path: Path, names: List[str]) -> int:
    """
    Purge memory tables, then vacuum.

    Args:
        db_path: SQLite memory database
        names: Table aliases to purge (or ["all"])
    """
    if not db_path.exists():
        print(f"❌ Memory database not found: {db_path}")
        return 1

    if "all" in names:
        names = list(TABLE_ALIASES)

    invalid = set(names) - set(TABLE_ALIASES)
    if invalid:
        print(f"❌ Invalid table names: {', '.join(sorted(invalid))}")
        print(f"   Valid tables: {', '.join(TABLE_ALIASES)}, all")
        return 1

    print(f"🗑️  Purging memory tables: {', '.join(names)}\n")

    with MemoryDatabase(db_path) as db:
        total_purged = 0

        for name in names:
            count = db.purge_table(TABLE_ALIASES[name])
            total_purged += count
            print(f"   {name:<15} {count:>10,} entries purged")

        print(f"\n   TOTAL:          {total_purged:>10,} entries purged")

        print("\n🔧 Vacuuming database...")
        db.vacuum()
        print("   ✓ Done")

    print("\n✅ Purge complete")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Manage the agent memory database (view stats, purge tables)"
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show table statistics",
    )
    parser.add_argument(
        "--purge",
        type=str,
        help="Purge tables (comma-separated: idf,working,vector or 'all')",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=Path("data/memory/memory.db"),
        help="Memory database (default: data/memory/memory.db)",
    )

    args = parser.parse_args(argv)

    if not args.stats and not args.purge:
        parser.print_help()
        print("\n❌ Error: Must specify --stats or --purge")
        sys.exit(1)

    if args.stats:
        exit_code = show_stats(args.db)
        if exit_code != 0:
            sys.exit(exit_code)

    if args.purge:
        names = [t.strip() for t in args.purge.split(",") if t.strip()]
        sys.exit(purge_tables(args.db, names))

    sys.exit(0)


if __name__ == "__main__":
    main()
