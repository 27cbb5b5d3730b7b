"""
pastes/store.py -- SQLAlchemy Core persistence layer for pastes.

Pattern: Repository + Data Mapper (same as logs/store.py).
PasteStore is the repository; _row_to_paste is the mapper. It is also the
storage boundary for metadata: Paste.content and Paste.metadata are packed
into the single stored content column here and nowhere else.

Tables:
  pastes      one row per paste, custom_url is the primary key
  encryption  key material for private pastes, keyed by (view_password, custom_url)
  expiry      optional expiry timestamp per paste

Failure semantics:
  Public methods return core.models.Result and never raise SQLAlchemyError.
  Multi-table writes (create, update with re-encryption, delete) run in one
  transaction so a failure leaves no orphaned encryption or expiry rows. The
  primary key on custom_url makes a racing duplicate create fail cleanly with
  the same "already exists" message as the pre-check in the service.

Layer rule: no imports from api/. auth.crypto / auth.access are leaf helpers.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Optional

from sqlalchemy import BigInteger, Column, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.models import VERSION_PASTE_GROUP, VERSION_PASTE_URL, Result
from pastes.metadata import pack_content, unpack_content
from pastes.models import EncryptionInfo, Paste

logger = logging.getLogger("entry.pastes")

_STORE_ERROR = "Paste store error"
ALREADY_EXISTS = "A paste with this custom URL already exists!"

DEFAULT_LIST_LIMIT = 1000

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_pastes = Table(
    "pastes",
    _metadata,
    Column("custom_url", String(256), primary_key=True),
    Column("content", Text, nullable=False),
    Column("edit_password", String(64), nullable=False, server_default=""),
    Column("view_password", String(64), nullable=False, server_default=""),
    Column("pub_date", BigInteger, nullable=False),  # unix ms
    Column("edit_date", BigInteger, nullable=False),  # unix ms
    Column("group_name", String(100), nullable=False, server_default="", index=True),
    Column("group_submit_password", String(64), nullable=False, server_default=""),
)

_encryption = Table(
    "encryption",
    _metadata,
    Column("view_password", String(64), primary_key=True),
    Column("custom_url", String(256), primary_key=True),
    Column("iv", String(24), nullable=False),
    Column("key", String(64), nullable=False),
    Column("auth", String(32), nullable=False),
)

_expiry = Table(
    "expiry",
    _metadata,
    Column("custom_url", String(256), primary_key=True),
    Column("expire_on", BigInteger, nullable=False),  # unix ms
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PasteStore:
    """Repository for Paste entities and their encryption/expiry side rows.

    Usage:
        store = PasteStore("sqlite:///data/entry.sqlite", version="0.1.0")
        store.create_paste(Paste(custom_url="hello", content="# hi", edit_password=create_hash("secret")))
        paste = store.get_paste("hello").record
        store.close()
    """

    def __init__(self, db_url: str, version: str = "") -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)
        self._ensure_version_paste(version)

    def _ensure_version_paste(self, version: str) -> None:
        """Seed the reserved version paste, or refresh its content to the running version.

        The empty edit password makes it uneditable: no password hashes to "".
        """
        now = _now_ms()
        with self.engine.begin() as conn:
            row = conn.execute(
                select(_pastes.c.content).where(_pastes.c.custom_url == VERSION_PASTE_URL)
            ).fetchone()
            if row is None:
                conn.execute(
                    _pastes.insert().values(
                        custom_url=VERSION_PASTE_URL,
                        content=version,
                        edit_password="",
                        view_password="",
                        pub_date=now,
                        edit_date=now,
                        group_name=VERSION_PASTE_GROUP,
                        group_submit_password="",
                    )
                )
            elif row.content != version:
                conn.execute(
                    _pastes.update()
                    .where(_pastes.c.custom_url == VERSION_PASTE_URL)
                    .values(content=version, edit_date=now)
                )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_paste(self, custom_url: str) -> Result:
        """Return Result(True, ..., Paste | None). A missing paste is not a failure."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_pastes.select().where(_pastes.c.custom_url == custom_url)).fetchone()
                expiry = conn.execute(
                    select(_expiry.c.expire_on).where(_expiry.c.custom_url == custom_url)
                ).scalar()
        except SQLAlchemyError:
            logger.exception("get_paste failed")
            return Result(False, _STORE_ERROR)
        if row is None:
            return Result(True, "Paste does not exist", None)
        paste = _row_to_paste(row)
        paste.expire_on = expiry
        return Result(True, custom_url, paste)

    def get_encryption_info(self, view_password_hash: str, custom_url: str) -> Result:
        """Return Result(True, ..., EncryptionInfo | None) for a (view hash, URL) pair."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    _encryption.select().where(
                        (_encryption.c.view_password == view_password_hash) & (_encryption.c.custom_url == custom_url)
                    )
                ).fetchone()
        except SQLAlchemyError:
            logger.exception("get_encryption_info failed")
            return Result(False, _STORE_ERROR)
        if row is None:
            return Result(True, "No encryption record", None)
        return Result(True, custom_url, EncryptionInfo(key=row.key, iv=row.iv, auth=row.auth))

    def list_pastes(self, include_private: bool = False, limit: Optional[int] = DEFAULT_LIST_LIMIT) -> Result:
        """Return up to limit pastes, oldest first. Private pastes are skipped unless asked for."""
        stmt = _pastes.select()
        if not include_private:
            stmt = stmt.where(_pastes.c.view_password == "")
        return self._select_many(stmt.order_by(_pastes.c.pub_date).limit(limit), "list_pastes")

    def list_group(self, group_name: str) -> Result:
        stmt = _pastes.select().where(_pastes.c.group_name == group_name).order_by(_pastes.c.pub_date)
        return self._select_many(stmt, "list_group")

    def group_submit_password(self, group_name: str) -> Optional[str]:
        """Return the stored submit password hash of an existing group, or None if no paste uses it."""
        try:
            with self.engine.connect() as conn:
                return conn.execute(
                    select(_pastes.c.group_submit_password).where(_pastes.c.group_name == group_name).limit(1)
                ).scalar()
        except SQLAlchemyError:
            logger.exception("group_submit_password failed")
            return None

    def count_pastes(self) -> int:
        try:
            with self.engine.connect() as conn:
                return conn.execute(select(func.count()).select_from(_pastes)).scalar() or 0
        except SQLAlchemyError:
            logger.exception("count_pastes failed")
            return 0

    def expired_urls(self, now_ms: Optional[int] = None) -> list[str]:
        now_ms = _now_ms() if now_ms is None else now_ms
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(select(_expiry.c.custom_url).where(_expiry.c.expire_on <= now_ms)).fetchall()
        except SQLAlchemyError:
            logger.exception("expired_urls failed")
            return []
        return [r.custom_url for r in rows]

    def _select_many(self, stmt, operation: str) -> Result:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).fetchall()
        except SQLAlchemyError:
            logger.exception("%s failed", operation)
            return Result(False, _STORE_ERROR, [])
        return Result(True, f"{len(rows)} pastes", [_row_to_paste(r) for r in rows])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_paste(self, paste: Paste, encryption: Optional[EncryptionInfo] = None) -> Result:
        """Insert paste (and its encryption / expiry rows) in one transaction.

        paste.content must already be ciphertext when encryption is given.
        """
        try:
            with self.engine.begin() as conn:
                conn.execute(_pastes.insert().values(**_paste_values(paste)))
                if encryption is not None:
                    conn.execute(_encryption.insert().values(**_encryption_values(paste, encryption)))
                if paste.expire_on is not None:
                    conn.execute(_expiry.insert().values(custom_url=paste.custom_url, expire_on=paste.expire_on))
        except IntegrityError:
            return Result(False, ALREADY_EXISTS, paste)
        except (SQLAlchemyError, OverflowError):
            # sqlite3 raises OverflowError for integers wider than 64 bits.
            logger.exception("create_paste failed")
            return Result(False, _STORE_ERROR, paste)
        return Result(True, "Paste created!", paste)

    def update_paste(self, old_url: str, paste: Paste, encryption: Optional[EncryptionInfo] = None) -> Result:
        """Replace the paste stored at old_url with paste (which may carry a new URL).

        When encryption is given, the old key material is replaced. Existing key
        material and expiry rows follow a rename.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _pastes.update().where(_pastes.c.custom_url == old_url).values(**_paste_values(paste))
                )
                if result.rowcount == 0:
                    return Result(False, "This paste does not exist!", paste)
                if encryption is not None:
                    conn.execute(_encryption.delete().where(_encryption.c.custom_url == old_url))
                    conn.execute(_encryption.insert().values(**_encryption_values(paste, encryption)))
                elif old_url != paste.custom_url:
                    conn.execute(
                        _encryption.update()
                        .where(_encryption.c.custom_url == old_url)
                        .values(custom_url=paste.custom_url)
                    )
                if old_url != paste.custom_url:
                    conn.execute(
                        _expiry.update().where(_expiry.c.custom_url == old_url).values(custom_url=paste.custom_url)
                    )
        except IntegrityError:
            return Result(False, ALREADY_EXISTS, paste)
        except (SQLAlchemyError, OverflowError):
            logger.exception("update_paste failed")
            return Result(False, _STORE_ERROR, paste)
        return Result(True, "Paste updated!", paste)

    def delete_paste(self, custom_url: str) -> Result:
        """Delete a paste with its encryption and expiry rows."""
        try:
            with self.engine.begin() as conn:
                result = conn.execute(_pastes.delete().where(_pastes.c.custom_url == custom_url))
                conn.execute(_encryption.delete().where(_encryption.c.custom_url == custom_url))
                conn.execute(_expiry.delete().where(_expiry.c.custom_url == custom_url))
        except SQLAlchemyError:
            logger.exception("delete_paste failed")
            return Result(False, _STORE_ERROR)
        if result.rowcount == 0:
            return Result(False, "This paste does not exist!")
        return Result(True, "Paste deleted!")

    # ------------------------------------------------------------------
    # Serialization helpers
    # ------------------------------------------------------------------

    @staticmethod
    def clean_paste(paste: Paste) -> Paste:
        """Return a copy safe to send to clients: no password hashes, no key material.

        view_password becomes "exists" so clients can still tell the paste is private.
        """
        return dataclasses.replace(
            paste,
            edit_password="",
            view_password="exists" if paste.view_password else "",
            group_submit_password="",
        )

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _paste_values(paste: Paste) -> dict:
    return {
        "custom_url": paste.custom_url,
        "content": pack_content(paste.content, paste.metadata),
        "edit_password": paste.edit_password,
        "view_password": paste.view_password,
        "pub_date": paste.pub_date,
        "edit_date": paste.edit_date,
        "group_name": paste.group_name,
        "group_submit_password": paste.group_submit_password,
    }


def _encryption_values(paste: Paste, encryption: EncryptionInfo) -> dict:
    return {
        "view_password": paste.view_password,
        "custom_url": paste.custom_url,
        "iv": encryption.iv,
        "key": encryption.key,
        "auth": encryption.auth,
    }


def _row_to_paste(row) -> Paste:
    content, metadata = unpack_content(row.content)
    return Paste(
        custom_url=row.custom_url,
        content=content,
        edit_password=row.edit_password,
        view_password=row.view_password,
        pub_date=row.pub_date,
        edit_date=row.edit_date,
        group_name=row.group_name,
        group_submit_password=row.group_submit_password,
        metadata=metadata,
    )
