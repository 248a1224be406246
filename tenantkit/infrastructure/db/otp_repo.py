from __future__ import annotations

from datetime import datetime
from typing import Sequence

import psycopg
from psycopg.rows import tuple_row
from psycopg_pool import AsyncConnectionPool

from tenantkit.domain.entities import OtpRecord
from tenantkit.domain.errors import PersistenceFailure
from tenantkit.domain.ports.otp_repository import OtpRepositoryPort


def _to_record(row: tuple) -> OtpRecord:
    id_, identifier, code, created_at, expires_at = row
    return OtpRecord(
        id=str(id_),
        identifier=str(identifier),
        code=str(code),
        created_at=created_at,
        expires_at=expires_at,
    )


class PgOtpRepository(OtpRepositoryPort):
    """
    Postgres implementation of OtpRepositoryPort.

    Each call borrows a connection from the pool and runs in its own short
    transaction. psycopg errors (including pool timeouts) surface as
    PersistenceFailure.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def insert(self, record: OtpRecord) -> OtpRecord:
        sql = """
        INSERT INTO otps (identifier, code, created_at, expires_at)
        VALUES (%s, %s, %s, %s)
        RETURNING id, identifier, code, created_at, expires_at
        """
        params = (record.identifier, record.code, record.created_at, record.expires_at)
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor(row_factory=tuple_row) as cur:
                        await cur.execute(sql, params)
                        row = await cur.fetchone()
        except psycopg.Error as e:
            raise PersistenceFailure(f"otp insert failed: {e}") from e
        if not row:
            raise PersistenceFailure("otp insert returned no row")
        return _to_record(row)

    async def query(self, identifier: str, code: str) -> list[OtpRecord]:
        sql = """
        SELECT id, identifier, code, created_at, expires_at
        FROM otps
        WHERE identifier = %s AND code = %s
        ORDER BY created_at DESC, id DESC
        """
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor(row_factory=tuple_row) as cur:
                    await cur.execute(sql, (identifier, code))
                    rows: Sequence[tuple] = await cur.fetchall()
        except psycopg.Error as e:
            raise PersistenceFailure(f"otp query failed: {e}") from e
        return [_to_record(row) for row in rows]

    async def delete_by_id(self, record_id: str) -> bool:
        sql = "DELETE FROM otps WHERE id = %s"
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute(sql, (int(record_id),))
                        return cur.rowcount > 0
        except psycopg.Error as e:
            raise PersistenceFailure(f"otp delete failed: {e}") from e

    async def delete_expired(self, now: datetime) -> int:
        sql = "DELETE FROM otps WHERE expires_at <= %s"
        try:
            async with self._pool.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute(sql, (now,))
                        return max(cur.rowcount, 0)
        except psycopg.Error as e:
            raise PersistenceFailure(f"expired otp cleanup failed: {e}") from e
