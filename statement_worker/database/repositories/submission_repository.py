from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from statement_worker.database.connection import get_connection
from statement_worker.database.exceptions import RecordNotFoundError, StoreError
from statement_worker.database.keys import (
    FILE_PREFIX,
    RESULT_PREFIX,
    CompositeKey,
    document_key,
    profile_key,
    submission_partition_key,
)
from statement_worker.database.models import (
    DocumentRecord,
    FileRecord,
    ProfileRecord,
    ResultRecord,
    Status,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    pk TEXT NOT NULL,
    sk TEXT NOT NULL,
    status TEXT NOT NULL,
    attributes JSONB NOT NULL DEFAULT '{{}}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (pk, sk)
)
"""


class SubmissionRepository:
    """Keyed store for the Document, Profile, File and Result records of a submission.

    Every record is one row addressed by (pk, sk). Record fields live in a
    JSONB attributes column; status and timestamps are real columns so that
    list-by-prefix-and-status stays a plain index scan.
    """

    def __init__(self, table_name: str = "submission_records") -> None:
        self._table = sql.Identifier(table_name)

    def ensure_schema(self) -> None:
        """Create the records table if it does not exist yet."""
        self._execute(sql.SQL(_SCHEMA).format(table=self._table), ())

    # Documents and profiles

    def get_document(self, org_id: str, submission_id: str) -> DocumentRecord:
        """Fetch the Document of a submission.

        Raises:
            RecordNotFoundError: if the submission has no Document.
        """
        row = self._fetch_one(document_key(org_id, submission_id))
        attrs = row["attributes"]
        return DocumentRecord(
            org_id=attrs["org_id"],
            submission_id=attrs["submission_id"],
            created_by=attrs.get("created_by", ""),
            status=Status(row["status"]),
            document_name=attrs.get("document_name", ""),
            total_pages=int(attrs.get("total_pages", 0)),
            total_documents=int(attrs.get("total_documents", 0)),
            transformed_path=attrs.get("transformed_path", ""),
            updated_at=row["updated_at"],
        )

    def get_profile(self, org_id: str, submission_id: str) -> ProfileRecord:
        """Fetch the Profile of a submission.

        Raises:
            RecordNotFoundError: if the submission has no Profile.
        """
        row = self._fetch_one(profile_key(org_id, submission_id))
        attrs = row["attributes"]
        return ProfileRecord(
            org_id=attrs["org_id"],
            submission_id=attrs["submission_id"],
            created_by=attrs.get("created_by", ""),
            status=Status(row["status"]),
            callback_url=attrs.get("callback_url"),
        )

    def create_document(self, document: DocumentRecord) -> None:
        self._put(
            document.key,
            document.status,
            {
                "org_id": document.org_id,
                "submission_id": document.submission_id,
                "created_by": document.created_by,
                "document_name": document.document_name,
                "total_pages": document.total_pages,
                "total_documents": document.total_documents,
                "transformed_path": document.transformed_path,
            },
        )

    def create_profile(self, profile: ProfileRecord) -> None:
        self._put(
            profile.key,
            profile.status,
            {
                "org_id": profile.org_id,
                "submission_id": profile.submission_id,
                "created_by": profile.created_by,
                "callback_url": profile.callback_url,
            },
        )

    def update_document(
        self,
        key: CompositeKey,
        *,
        status: Status | None = None,
        **attributes: Any,
    ) -> None:
        """Partially update a Document; only the given fields change.

        Raises:
            RecordNotFoundError: if no Document exists under the key.
        """
        self._update(key, status, attributes)

    def update_profile_status(self, key: CompositeKey, status: Status) -> None:
        self._update(key, status, {})

    # Files and results

    def list_files(
        self, org_id: str, submission_id: str, status: Status | None = None
    ) -> list[FileRecord]:
        """List the Files of a submission, optionally filtered by status."""
        rows = self._fetch_many(
            submission_partition_key(org_id, submission_id), FILE_PREFIX, status
        )
        return [
            FileRecord(
                org_id=row["attributes"]["org_id"],
                submission_id=row["attributes"]["submission_id"],
                identifier=row["sk"][len(FILE_PREFIX):],
                file_path=row["attributes"]["file_path"],
                status=Status(row["status"]),
            )
            for row in rows
        ]

    def list_results(
        self, org_id: str, submission_id: str, status: Status | None = None
    ) -> list[ResultRecord]:
        """List the Results of a submission, optionally filtered by status."""
        rows = self._fetch_many(
            submission_partition_key(org_id, submission_id), RESULT_PREFIX, status
        )
        return [
            ResultRecord(
                org_id=row["attributes"]["org_id"],
                submission_id=row["attributes"]["submission_id"],
                identifier=row["sk"][len(RESULT_PREFIX):],
                status=Status(row["status"]),
                duration_in_seconds=int(row["attributes"].get("duration_in_seconds", 0)),
                result_path=row["attributes"].get("result_path", ""),
            )
            for row in rows
        ]

    def create_file(self, file: FileRecord) -> None:
        self._put(
            file.key,
            file.status,
            {
                "org_id": file.org_id,
                "submission_id": file.submission_id,
                "file_path": file.file_path,
            },
        )

    def create_result(self, result: ResultRecord) -> None:
        """Write a Result. An existing Result under the same key is replaced."""
        self._put(
            result.key,
            result.status,
            {
                "org_id": result.org_id,
                "submission_id": result.submission_id,
                "duration_in_seconds": result.duration_in_seconds,
                "result_path": result.result_path,
            },
        )

    def update_file_status(self, key: CompositeKey, status: Status) -> None:
        self._update(key, status, {})

    def update_result(
        self,
        key: CompositeKey,
        *,
        status: Status,
        duration_in_seconds: int | None = None,
        result_path: str | None = None,
    ) -> None:
        attributes: dict[str, Any] = {}
        if duration_in_seconds is not None:
            attributes["duration_in_seconds"] = duration_in_seconds
        if result_path is not None:
            attributes["result_path"] = result_path
        self._update(key, status, attributes)

    # Row access

    def _fetch_one(self, key: CompositeKey) -> dict[str, Any]:
        query = sql.SQL(
            "SELECT pk, sk, status, attributes, updated_at FROM {table} "
            "WHERE pk = %s AND sk = %s"
        ).format(table=self._table)
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, (key.partition_key, key.sort_key))
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StoreError(f"Failed to read {key.partition_key}/{key.sort_key}: {exc}") from exc

        if row is None:
            raise RecordNotFoundError(f"Record {key.partition_key}/{key.sort_key} not found")
        return row

    def _fetch_many(
        self, partition_key: str, sort_prefix: str, status: Status | None
    ) -> list[dict[str, Any]]:
        query = sql.SQL(
            "SELECT pk, sk, status, attributes, updated_at FROM {table} "
            "WHERE pk = %s AND starts_with(sk, %s) "
            "AND (%s::text IS NULL OR status = %s::text) "
            "ORDER BY sk"
        ).format(table=self._table)
        status_value = status.value if status is not None else None
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, (partition_key, sort_prefix, status_value, status_value))
                    return list(cur.fetchall())
        except psycopg.Error as exc:
            raise StoreError(f"Failed to list {partition_key}/{sort_prefix}*: {exc}") from exc

    def _put(self, key: CompositeKey, status: Status, attributes: dict[str, Any]) -> None:
        query = sql.SQL(
            """
            INSERT INTO {table} (pk, sk, status, attributes)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (pk, sk) DO UPDATE
            SET status = EXCLUDED.status,
                attributes = EXCLUDED.attributes,
                updated_at = NOW()
            """
        ).format(table=self._table)
        self._execute(query, (key.partition_key, key.sort_key, status.value, Jsonb(attributes)))

    def _update(
        self, key: CompositeKey, status: Status | None, attributes: dict[str, Any]
    ) -> None:
        query = sql.SQL(
            """
            UPDATE {table}
            SET status = COALESCE(%s, status),
                attributes = attributes || %s,
                updated_at = NOW()
            WHERE pk = %s AND sk = %s
            """
        ).format(table=self._table)
        status_value = status.value if status is not None else None
        rowcount = self._execute(
            query, (status_value, Jsonb(attributes), key.partition_key, key.sort_key)
        )
        if rowcount == 0:
            raise RecordNotFoundError(f"Record {key.partition_key}/{key.sort_key} not found")

    def _execute(self, query: sql.Composable, params: tuple[Any, ...]) -> int:
        try:
            with get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    rowcount = cur.rowcount
                conn.commit()
        except psycopg.Error as exc:
            raise StoreError(f"Submission store write failed: {exc}") from exc
        return rowcount
