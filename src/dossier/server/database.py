"""Content store backed by SQLAlchemy with SQLite.

This module provides:
- Database: ContentStore keeping file rows and content blocks in SQLite
- DatabaseFile: FileHandle bound to one file row
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dossier.core.errors import AlreadyExistsError, DeletedError, StoreError
from dossier.core.paths import normalize_prefix, split_path, validate_file_path, validate_path
from dossier.server.models import Base, Block, StoredFile
from dossier.server.storage import ContentStore, FileHandle, FileMetadata, TruncateMode

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

# Appended data is split into blocks of at most this size
BLOCK_SIZE = 64 * 1024


class DatabaseFile(FileHandle):
    """Handle on a file row of a Database.

    The handle only remembers the row id; every call opens its own session
    and fails with DeletedError once the row is gone.
    """

    def __init__(self, db: Database, file_id: int, path: str, name: str) -> None:
        self._db = db
        self._file_id = file_id
        self._path = path
        self._name = name

    def __repr__(self) -> str:
        return f"DatabaseFile({self._path!r})"

    @property
    def path(self) -> str:
        return self._path

    @property
    def name(self) -> str:
        return self._name

    def _require(self, session: Session) -> StoredFile:
        """Fetch the backing row or raise DeletedError."""
        row = session.get(StoredFile, self._file_id)
        if row is None:
            raise DeletedError(f"{self._path} was deleted")
        return row

    @property
    def length(self) -> int:
        with self._db._session() as session:
            self._require(session)
            stmt = select(func.coalesce(func.sum(Block.size), 0)).where(
                Block.file_id == self._file_id
            )
            return int(session.execute(stmt).scalar_one())

    def append(self, data: bytes) -> None:
        if not data:
            return
        with self._db._write_lock, self._db._session() as session:
            self._require(session)
            stmt = select(func.max(Block.position)).where(Block.file_id == self._file_id)
            last = session.execute(stmt).scalar_one_or_none()
            position = 0 if last is None else last + 1
            for offset in range(0, len(data), BLOCK_SIZE):
                piece = data[offset : offset + BLOCK_SIZE]
                session.add(
                    Block(file_id=self._file_id, position=position, size=len(piece), data=piece)
                )
                position += 1
            session.commit()

    def truncate(self, length: int, mode: TruncateMode) -> None:
        if length < 0:
            raise ValueError(f"length must not be negative, got {length}")
        with self._db._write_lock, self._db._session() as session:
            self._require(session)
            if length == 0:
                session.execute(delete(Block).where(Block.file_id == self._file_id))
                session.commit()
                return

            stmt = (
                select(Block.id, Block.size)
                .where(Block.file_id == self._file_id)
                .order_by(Block.position)
            )
            blocks = list(session.execute(stmt).tuples())
            if sum(size for _, size in blocks) <= length:
                return

            # Walk from the end that is kept; only the block the cut falls in is read
            keep_head = mode is TruncateMode.REMOVING_END
            ordered = blocks if keep_head else blocks[::-1]
            remaining = length
            removed: list[int] = []
            for block_id, size in ordered:
                if remaining >= size:
                    remaining -= size
                elif remaining > 0:
                    block = session.execute(select(Block).where(Block.id == block_id)).scalar_one()
                    block.data = block.data[:remaining] if keep_head else block.data[size - remaining :]
                    block.size = remaining
                    remaining = 0
                else:
                    removed.append(block_id)

            if removed:
                session.execute(delete(Block).where(Block.id.in_(removed)))
            session.commit()

    def update_metadata(self, metadata: FileMetadata) -> None:
        with self._db._write_lock, self._db._session() as session:
            row = self._require(session)
            row.digest = metadata.digest
            session.commit()

    def clear_metadata(self) -> None:
        with self._db._write_lock, self._db._session() as session:
            row = self._require(session)
            row.digest = None
            session.commit()

    def metadata(self) -> FileMetadata | None:
        with self._db._session() as session:
            row = self._require(session)
            if row.digest is None:
                return None
            return FileMetadata(digest=row.digest)

    def contents(self) -> Iterator[bytes]:
        with self._db._session() as session:
            self._require(session)
            stmt = (
                select(Block.id)
                .where(Block.file_id == self._file_id)
                .order_by(Block.position)
            )
            block_ids = list(session.execute(stmt).scalars().all())

        # One block per session keeps memory bounded for large files
        for block_id in block_ids:
            with self._db._session() as session:
                data = session.execute(
                    select(Block.data).where(Block.id == block_id)
                ).scalar_one_or_none()
            if data is None:
                raise DeletedError(f"{self._path} was deleted")
            yield data


class Database(ContentStore):
    """SQLAlchemy content store.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    Writers are serialized in-process.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.Lock()

        # Create engine with check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )

        # Enable WAL mode
        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    @property
    def location(self) -> str:
        return str(self._db_path)

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Open a database session.

        SQLAlchemy failures inside the block are raised as StoreError.
        """
        try:
            with Session(self._engine) as session:
                yield session
        except SQLAlchemyError as e:
            raise StoreError(f"store failure: {e}") from e

    def _handle(self, row: StoredFile) -> DatabaseFile:
        return DatabaseFile(self, row.id, row.path, row.name)

    def list_recursive(self, prefix: str) -> list[FileHandle]:
        validate_path(prefix)
        prefix = normalize_prefix(prefix)
        with self._session() as session:
            stmt = (
                select(StoredFile)
                .where(StoredFile.path.startswith(prefix, autoescape=True))
                .order_by(StoredFile.path)
            )
            return [self._handle(row) for row in session.execute(stmt).scalars().all()]

    def list(self, prefix: str) -> list[FileHandle]:
        validate_path(prefix)
        prefix = normalize_prefix(prefix)
        with self._session() as session:
            stmt = (
                select(StoredFile)
                .where(StoredFile.directory == prefix)
                .order_by(StoredFile.name)
            )
            return [self._handle(row) for row in session.execute(stmt).scalars().all()]

    def load(self, path: str) -> FileHandle | None:
        validate_file_path(path)
        with self._session() as session:
            stmt = select(StoredFile).where(StoredFile.path == path)
            row = session.execute(stmt).scalar_one_or_none()
            return self._handle(row) if row else None

    def create(self, path: str) -> FileHandle:
        directory, name = split_path(path)
        with self._write_lock, self._session() as session:
            stmt = select(StoredFile.id).where(StoredFile.path == path)
            if session.execute(stmt).scalar_one_or_none() is not None:
                raise AlreadyExistsError(f"{path} already exists")

            row = StoredFile(path=path, directory=directory, name=name)
            session.add(row)
            try:
                session.commit()
            except IntegrityError as e:
                raise AlreadyExistsError(f"{path} already exists") from e
            logger.debug(f"Created {path}")
            return self._handle(row)

    def delete(self, path: str) -> bool:
        validate_file_path(path)
        with self._write_lock, self._session() as session:
            stmt = select(StoredFile).where(StoredFile.path == path)
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                return False

            # Delete blocks explicitly, foreign keys are off by default in SQLite
            session.execute(delete(Block).where(Block.file_id == row.id))
            session.delete(row)
            session.commit()
            logger.debug(f"Deleted {path}")
            return True
