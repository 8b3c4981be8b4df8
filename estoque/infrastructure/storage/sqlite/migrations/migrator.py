"""
Versioned schema migrations for the inventory database.

Files named ``vNNN_name.sql`` in this directory are applied in version order
and recorded in ``schema_migrations`` with a checksum. An applied file is
frozen: editing it is reported as an error instead of being re-run.

The ledger relies on SQLite triggers to stay append-only and on a partial
unique index to keep one open allocation per serial unit. After migrating,
those guards are checked and the database is refused without them.
"""

import asyncio
import hashlib
import re
import shutil
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import aiosqlite

from estoque.config import get_logger, get_settings
from estoque.core.exceptions import ConfigurationError

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

REQUIRED_TABLES = (
    "schema_migrations",
    "materiais_estoque",
    "materiais_seriais",
    "materiais_alocados",
    "materiais_historico",
)

# Triggers keeping history immutable and records undeletable.
REQUIRED_TRIGGERS = (
    "trg_historico_no_update",
    "trg_historico_no_delete",
    "trg_materiais_no_delete",
    "trg_seriais_no_delete",
    "trg_alocados_no_delete",
    "trg_seriais_identity",
)

REQUIRED_INDEXES = ("uq_alocados_serial_aberta",)

_FILENAME = re.compile(r"v(\d+)_(.+)\.sql")


@dataclass
class MigrationInfo:
    """A migration file on disk."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = _FILENAME.fullmatch(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")
        checksum = hashlib.sha256(path.read_bytes()).hexdigest()[:16]
        return cls(version=match.group(1), name=match.group(2), path=path, checksum=checksum)


@dataclass
class MigrationResult:
    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


@dataclass
class SchemaCheck:
    """Outcome of one schema verification."""

    name: str
    passed: bool
    missing: list[str] = field(default_factory=list)
    detail: str | None = None

    @property
    def status(self) -> str:
        return "PASS" if self.passed else "FAIL"


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Migration files in ``directory``, oldest first; badly named files are skipped."""
    migrations = []
    for path in sorted(directory.glob("v*.sql")):
        try:
            migrations.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return migrations


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied versions mapped to the checksum they were applied with."""
    try:
        cursor = await conn.execute("SELECT version, checksum FROM schema_migrations ORDER BY version")
    except aiosqlite.OperationalError:
        return {}
    return {row[0]: row[1] for row in await cursor.fetchall()}


async def _schema_objects(conn: aiosqlite.Connection, kind: str) -> set[str]:
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = ?", (kind,))
    return {row[0] for row in await cursor.fetchall()}


async def check_guards(conn: aiosqlite.Connection) -> list[SchemaCheck]:
    """Tables, append-only triggers and the open-allocation index."""
    tables = await _schema_objects(conn, "table")
    triggers = await _schema_objects(conn, "trigger")
    indexes = await _schema_objects(conn, "index")
    checks = []
    for name, required, existing in (
        ("required_tables", REQUIRED_TABLES, tables),
        ("append_only_triggers", REQUIRED_TRIGGERS, triggers),
        ("allocation_indexes", REQUIRED_INDEXES, indexes),
    ):
        missing = [item for item in required if item not in existing]
        checks.append(SchemaCheck(name=name, passed=not missing, missing=missing))
    return checks


async def apply_migration(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    """Run one migration file and record it."""
    logger.info("applying_migration", version=migration.version, name=migration.name)
    start = time.monotonic()

    try:
        await conn.executescript(migration.path.read_text(encoding="utf-8"))
        elapsed = int((time.monotonic() - start) * 1000)
        await conn.execute(
            """
            INSERT OR REPLACE INTO schema_migrations (version, name, checksum, execution_time_ms)
            VALUES (?, ?, ?, ?)
            """,
            (migration.version, migration.name, migration.checksum, elapsed),
        )
        await conn.commit()
    except (aiosqlite.Error, OSError) as e:
        await conn.rollback()
        logger.error("migration_failed", version=migration.version, error=str(e))
        return MigrationResult(
            version=migration.version,
            name=migration.name,
            success=False,
            execution_time_ms=int((time.monotonic() - start) * 1000),
            error=str(e),
        )

    logger.info("migration_applied", version=migration.version, execution_time_ms=elapsed)
    return MigrationResult(
        version=migration.version,
        name=migration.name,
        success=True,
        execution_time_ms=elapsed,
    )


def create_backup(db_path: Path) -> Path:
    """Copy the database file next to itself with a timestamp suffix."""
    backup_path = db_path.with_suffix(f".backup_{datetime.now():%Y%m%d_%H%M%S}.db")
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    shutil.copy2(backup_path, db_path)
    logger.warning("database_restored_from_backup", backup_path=str(backup_path))


async def _migrate(conn: aiosqlite.Connection) -> list[MigrationResult]:
    applied = await get_applied_migrations(conn)
    results: list[MigrationResult] = []

    for migration in discover_migrations():
        checksum = applied.get(migration.version)
        if checksum == migration.checksum:
            continue
        if checksum is not None:
            raise ConfigurationError(
                f"Migration v{migration.version} changed after it was applied; "
                "add a new migration instead",
                code="MIGRATION_CHECKSUM_CHANGED",
                details={"applied": checksum, "current": migration.checksum},
            )

        result = await apply_migration(conn, migration)
        results.append(result)
        if not result.success:
            break

    cursor = await conn.execute("PRAGMA foreign_key_check")
    violations = await cursor.fetchall()
    if violations:
        raise ConfigurationError(
            f"Foreign key violations after migrating: {len(violations)}",
            code="MIGRATION_FOREIGN_KEYS",
        )
    return results


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Bring the database up to the latest migration.

    Args:
        db_path: Database file (default from settings)
        create_backup_before: Copy an existing file first and restore it if migrating fails

    Returns:
        Results of the migrations applied in this run

    Raises:
        ConfigurationError: An applied file changed or a ledger guard is missing
    """
    if db_path is None:
        db_path = get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("initializing_database", db_path=str(db_path))

    backup_path = None
    if create_backup_before and db_path.exists():
        backup_path = create_backup(db_path)

    try:
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")
            results = await _migrate(conn)

            failed = [check for check in await check_guards(conn) if not check.passed]
            if failed and all(r.success for r in results):
                raise ConfigurationError(
                    "Inventory schema is missing ledger guards",
                    code="SCHEMA_GUARDS_MISSING",
                    details={check.name: check.missing for check in failed},
                )
    except (ConfigurationError, aiosqlite.Error, OSError) as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path is not None:
            restore_backup(db_path, backup_path)
        raise

    if any(not r.success for r in results):
        if backup_path is not None:
            restore_backup(db_path, backup_path)
        return results

    if backup_path is not None:
        backup_path.unlink()
    return results


run_migrations = initialize_database


async def get_migration_status(db_path: Path | None = None) -> dict:
    """Applied and pending versions of the database."""
    if db_path is None:
        db_path = get_settings().storage.db_path

    discovered = discover_migrations()
    if not db_path.exists():
        return {
            "exists": False,
            "current_version": None,
            "applied_migrations": [],
            "pending_migrations": [m.version for m in discovered],
            "total_migrations": len(discovered),
        }

    async with aiosqlite.connect(db_path) as conn:
        applied = await get_applied_migrations(conn)

    return {
        "exists": True,
        "current_version": max(applied) if applied else None,
        "applied_migrations": list(applied),
        "pending_migrations": [m.version for m in discovered if m.version not in applied],
        "total_migrations": len(discovered),
    }


async def verify_schema_integrity(db_path: Path | None = None) -> list[SchemaCheck]:
    """SQLite integrity, foreign keys and the ledger guards."""
    if db_path is None:
        db_path = get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA integrity_check")
        integrity = (await cursor.fetchone())[0]
        cursor = await conn.execute("PRAGMA foreign_key_check")
        fk_violations = len(await cursor.fetchall())
        checks = [
            SchemaCheck(name="integrity", passed=integrity == "ok", detail=integrity),
            SchemaCheck(
                name="foreign_keys",
                passed=fk_violations == 0,
                detail=f"{fk_violations} violations",
            ),
        ]
        checks.extend(await check_guards(conn))
    return checks


def main() -> None:
    """CLI: ``migrate`` (default), ``status`` or ``verify``."""
    import argparse

    parser = argparse.ArgumentParser(description="Estoque database migrator")
    parser.add_argument("command", nargs="?", default="migrate", choices=("migrate", "status", "verify"))
    parser.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    parser.add_argument("--no-backup", action="store_true", help="Skip backup before migrating")
    args = parser.parse_args()

    async def run() -> int:
        if args.command == "status":
            status = await get_migration_status(args.db_path)
            for key, value in status.items():
                print(f"{key}: {value}")
            return 0

        if args.command == "verify":
            checks = await verify_schema_integrity(args.db_path)
            for check in checks:
                suffix = f" missing={check.missing}" if check.missing else ""
                print(f"[{check.status}] {check.name}{suffix}")
            return 0 if all(check.passed for check in checks) else 1

        results = await initialize_database(args.db_path, create_backup_before=not args.no_backup)
        if not results:
            print("Database is up to date")
        for result in results:
            outcome = "OK" if result.success else f"FAILED: {result.error}"
            print(f"v{result.version} {result.name} ({result.execution_time_ms}ms) {outcome}")
        return 0 if all(r.success for r in results) else 1

    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
