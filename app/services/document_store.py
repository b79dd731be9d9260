from dataclasses import dataclass, field
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DocumentStoreError
from app.models.document import Document

logger = structlog.get_logger(__name__)


@dataclass
class StoredDocument:
    """A document as read from the store."""

    id: str
    data: dict[str, Any]


@dataclass
class _BatchOp:
    kind: str  # "set" | "delete"
    collection: str
    doc_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    merge: bool = False


class WriteBatch:
    """Collects set/delete operations and applies them in one transaction."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._ops: list[_BatchOp] = []
        self._committed = False

    def set(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        merge: bool = False,
    ) -> "WriteBatch":
        self._ops.append(_BatchOp("set", collection, doc_id, dict(fields), merge))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(_BatchOp("delete", collection, doc_id))
        return self

    def __len__(self) -> int:
        return len(self._ops)

    async def commit(self) -> None:
        """Apply every queued operation or none of them."""
        if self._committed:
            raise DocumentStoreError("Batch has already been committed.")

        db = self._store.db
        try:
            for op in self._ops:
                if op.kind == "set":
                    await self._store._apply_set(
                        op.collection, op.doc_id, op.fields, op.merge
                    )
                else:
                    await self._store._apply_delete(op.collection, op.doc_id)
            await db.commit()
            self._committed = True

            logger.info("Batch committed", operations=len(self._ops))
        except Exception as e:
            await db.rollback()
            logger.error(
                "Batch commit failed, rolled back",
                operations=len(self._ops),
                error=str(e),
            )
            raise DocumentStoreError("Failed to save changes.") from e


class DocumentStore:
    """Keyed document store over the documents table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_row(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self.db.get(Document, (collection, doc_id))

    async def get_document(
        self, collection: str, doc_id: str
    ) -> Optional[dict[str, Any]]:
        """Return the document data, or None when it does not exist."""
        try:
            row = await self._get_row(collection, doc_id)
        except Exception as e:
            logger.error(
                "Failed to read document",
                collection=collection,
                doc_id=doc_id,
                error=str(e),
            )
            raise DocumentStoreError("Failed to load data.") from e

        if row is None:
            return None
        return dict(row.data or {})

    async def get_documents(
        self, collection: str, doc_ids: list[str]
    ) -> dict[str, dict[str, Any]]:
        """Bulk read by id; missing ids are absent from the result."""
        if not doc_ids:
            return {}
        try:
            result = await self.db.execute(
                select(Document).where(
                    Document.collection == collection,
                    Document.doc_id.in_(list(set(doc_ids))),
                )
            )
            rows = result.scalars().all()
        except Exception as e:
            logger.error(
                "Failed to read documents", collection=collection, error=str(e)
            )
            raise DocumentStoreError("Failed to load data.") from e

        return {row.doc_id: dict(row.data or {}) for row in rows}

    async def query_where(
        self, collection: str, field_name: str, value: Any
    ) -> list[StoredDocument]:
        """Return documents whose top-level ``field_name`` equals ``value``."""
        column = Document.data[field_name]
        if isinstance(value, bool):
            condition = column.as_boolean() == value
        elif isinstance(value, int):
            condition = column.as_integer() == value
        elif isinstance(value, float):
            condition = column.as_float() == value
        else:
            condition = column.as_string() == str(value)

        try:
            result = await self.db.execute(
                select(Document)
                .where(Document.collection == collection, condition)
                .order_by(Document.doc_id)
            )
            rows = result.scalars().all()
        except Exception as e:
            logger.error(
                "Failed to query documents",
                collection=collection,
                field=field_name,
                error=str(e),
            )
            raise DocumentStoreError("Failed to load data.") from e

        return [StoredDocument(id=row.doc_id, data=dict(row.data or {})) for row in rows]

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Write a single document and commit."""
        try:
            await self._apply_set(collection, doc_id, fields, merge)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to write document",
                collection=collection,
                doc_id=doc_id,
                error=str(e),
            )
            raise DocumentStoreError("Failed to save changes.") from e

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def _apply_set(
        self, collection: str, doc_id: str, fields: dict[str, Any], merge: bool
    ) -> None:
        row = await self._get_row(collection, doc_id)
        if row is None:
            self.db.add(Document(collection=collection, doc_id=doc_id, data=dict(fields)))
            await self.db.flush()
            return

        # Assign a fresh dict so the JSON column registers the change
        row.data = {**(row.data or {}), **fields} if merge else dict(fields)

    async def _apply_delete(self, collection: str, doc_id: str) -> None:
        row = await self._get_row(collection, doc_id)
        if row is not None:
            await self.db.delete(row)
