"""
SQLite Storage Implementation

DESIGN DECISION: SQLite (through SQLAlchemy) is the local embedded database:
1. A single file next to the user's data, no server
2. Per-statement atomicity, which is all the ledger relies on
3. Indexed columns for the fields the ledger queries by

Each collection is one table: the full record as a JSON `payload` column,
plus a copy of every indexed field in its own column. Equality, range and
ordering on indexed fields run in SQL; anything else is filtered in Python.

TRADEOFFS:
- Calls are synchronous under the async interface (records are small and
  the file is local)
- No multi-statement transactions across calls (the ledger journals its
  two-step writes instead)
"""

import json
from pathlib import Path
from typing import Any, Callable, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ledger.config import get_settings
from ledger.services.storage.interface import (
    COLLECTION_INDEXES,
    CollectionStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageBackend,
    StorageError,
)
from ledger.services.storage.memory import record_matches, sort_records


# Indexed fields that are not stored as text
COLUMN_TYPES = {
    "order": Integer,
    "achieved": Boolean,
}


class SqliteDatabase:
    """
    Low-level SQLite wrapper.

    Owns the engine and table definitions and provides retry logic for
    statements that hit a locked database.
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        settings = get_settings().storage
        self._url = database_url or settings.database_url
        self._echo = settings.echo if echo is None else echo
        self._engine: Optional[Engine] = None
        self._metadata = MetaData()
        self._tables = {
            name: self._build_table(name, fields)
            for name, fields in COLLECTION_INDEXES.items()
        }

    @property
    def url(self) -> str:
        return self._url

    def _build_table(self, name: str, fields: tuple[str, ...]) -> Table:
        columns = [
            Column("id", String, primary_key=True),
            Column("payload", Text, nullable=False),
        ]
        columns += [Column(field, COLUMN_TYPES.get(field, String), nullable=True) for field in fields]
        indexes = [Index(f"ix_{name}_{field}", field) for field in fields]
        return Table(name, self._metadata, *columns, *indexes)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )
    def connect(self) -> Engine:
        """
        Open the database and create missing tables.

        The parent directory of a file database is created if needed.
        """
        if self._engine is None:
            in_memory = self._url in ("sqlite://", "sqlite:///:memory:")
            try:
                if not in_memory:
                    db_file = Path(self._url.removeprefix("sqlite:///"))
                    db_file.parent.mkdir(parents=True, exist_ok=True)

                engine = create_engine(
                    self._url,
                    echo=self._echo,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool if in_memory else None,
                )
                if not in_memory:
                    @event.listens_for(engine, "connect")
                    def _set_sqlite_pragmas(dbapi_connection, _record):
                        cursor = dbapi_connection.cursor()
                        cursor.execute("PRAGMA journal_mode=WAL")
                        cursor.execute("PRAGMA synchronous=NORMAL")
                        cursor.close()

                self._metadata.create_all(engine)
                self._engine = engine
            except SQLAlchemyError as e:
                raise ConnectionError(f"Failed to open SQLite database {self._url}: {e}")
            except OSError as e:
                raise ConnectionError(f"Failed to create database directory: {e}")

        return self._engine

    def table(self, name: str) -> Table:
        try:
            return self._tables[name]
        except KeyError:
            raise StorageError(f"Unknown collection: {name}")

    @retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def run(self, work: Callable[[Connection], Any]) -> Any:
        """Run `work` inside one SQLite transaction, retrying on lock errors."""
        engine = self.connect()
        with engine.begin() as conn:
            return work(conn)

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


class SqliteCollection(CollectionStorageInterface):
    """
    SQLite implementation of one record collection.
    """

    def __init__(self, database: SqliteDatabase, name: str):
        self.name = name
        self._db = database
        self._table = database.table(name)
        self._indexed = set(COLLECTION_INDEXES[name])

    def _row_values(self, record: dict) -> dict:
        values = {"id": record["id"], "payload": json.dumps(record)}
        for field in self._indexed:
            values[field] = record.get(field)
        return values

    async def insert(self, record: dict) -> None:
        if not record.get("id"):
            raise StorageError(f"Record for {self.name} has no id")
        values = self._row_values(record)
        try:
            self._db.run(lambda conn: conn.execute(self._table.insert().values(values)))
        except IntegrityError:
            raise DuplicateError(f"{self.name} record already exists: {record['id']}")
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to insert into {self.name}: {e}")

    async def get(self, record_id: str) -> Optional[dict]:
        stmt = select(self._table.c.payload).where(self._table.c.id == record_id)
        try:
            row = self._db.run(lambda conn: conn.execute(stmt).first())
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read {self.name} record: {e}")
        return json.loads(row.payload) if row is not None else None

    async def update(self, record_id: str, changes: dict) -> dict:
        table = self._table

        def work(conn: Connection) -> dict:
            row = conn.execute(
                select(table.c.payload).where(table.c.id == record_id)
            ).first()
            if row is None:
                raise NotFoundError(f"{self.name} record not found: {record_id}")
            merged = {**json.loads(row.payload), **changes, "id": record_id}
            conn.execute(
                table.update().where(table.c.id == record_id).values(self._row_values(merged))
            )
            return merged

        try:
            return self._db.run(work)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update {self.name} record: {e}")

    async def delete(self, record_id: str) -> bool:
        stmt = self._table.delete().where(self._table.c.id == record_id)
        try:
            deleted = self._db.run(lambda conn: conn.execute(stmt).rowcount)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete {self.name} record: {e}")
        return deleted > 0

    def _split_where(self, where: Optional[dict[str, Any]]):
        """Separate filters SQL can apply from those done in Python."""
        clauses = []
        python_where = {}
        for field, value in (where or {}).items():
            if field in self._indexed:
                column = self._table.c[field]
                clauses.append(column.is_(None) if value is None else column == value)
            else:
                python_where[field] = value
        return clauses, python_where

    async def find(
        self,
        where: Optional[dict[str, Any]] = None,
        range_field: Optional[str] = None,
        lower: Any = None,
        upper: Any = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        clauses, python_where = self._split_where(where)
        python_range = range_field is not None and range_field not in self._indexed

        if range_field is not None and not python_range:
            column = self._table.c[range_field]
            clauses.append(column.is_not(None))
            if lower is not None:
                clauses.append(column >= lower)
            if upper is not None:
                clauses.append(column <= upper)

        stmt = select(self._table.c.payload).where(*clauses)

        python_sort = order_by is not None and order_by not in self._indexed
        if order_by is not None and not python_sort:
            column = self._table.c[order_by]
            if descending:
                stmt = stmt.order_by(column.is_(None).desc(), column.desc())
            else:
                stmt = stmt.order_by(column.is_(None), column.asc())

        in_python = bool(python_where) or python_range or python_sort
        if limit is not None and not in_python:
            stmt = stmt.limit(limit)

        try:
            rows = self._db.run(lambda conn: conn.execute(stmt).all())
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query {self.name}: {e}")

        records = [json.loads(row.payload) for row in rows]
        if in_python:
            records = [
                r for r in records
                if record_matches(
                    r,
                    python_where,
                    range_field if python_range else None,
                    lower,
                    upper,
                )
            ]
            if python_sort:
                records = sort_records(records, order_by, descending)
            if limit is not None:
                records = records[:limit]
        return records

    async def count(self, where: Optional[dict[str, Any]] = None) -> int:
        clauses, python_where = self._split_where(where)
        if python_where:
            return len(await self.find(where=where))
        stmt = select(func.count()).select_from(self._table).where(*clauses)
        try:
            return self._db.run(lambda conn: conn.execute(stmt).scalar_one())
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to count {self.name}: {e}")


class SqliteStorageBackend(StorageBackend):
    """All ledger collections in one SQLite database file."""

    def __init__(self, database: Optional[SqliteDatabase] = None):
        self._db = database or SqliteDatabase()
        self._collections: dict[str, SqliteCollection] = {}

    @property
    def database(self) -> SqliteDatabase:
        return self._db

    def collection(self, name: str) -> SqliteCollection:
        if name not in self._collections:
            self._collections[name] = SqliteCollection(self._db, name)
        return self._collections[name]

    def close(self) -> None:
        self._db.dispose()
