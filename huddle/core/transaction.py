import logging
from typing import Callable, Iterable

from supabase import Client

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Compensating wrapper for multi-step writes.

    The Supabase REST API has no multi-statement transaction, so every write
    made through this object records an undo action. If the ``with`` block
    raises, the undo actions run in reverse order and the original exception
    propagates.

    Usage::

        with UnitOfWork(supabase, label="accept_request") as uow:
            convo = uow.insert("conversations", {"is_group": False})
            uow.delete("friend_requests", id=request_id)
    """

    def __init__(self, supabase: Client, label: str = "unit_of_work"):
        self.supabase = supabase
        self.label = label
        self._undo: list[Callable[[], None]] = []

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.warning(
                f"rollback label={self.label} steps={len(self._undo)} error={exc!r}"
            )
            self.rollback()
        return False

    def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        inserted = self.supabase.table(table).insert(rows).execute().data or []
        ids = [row["id"] for row in inserted]
        if ids:
            self._undo.append(lambda: self._delete_ids(table, ids))
        return inserted

    def update(self, table: str, values: dict, id: str) -> list[dict]:
        previous = (
            self.supabase.table(table).select("*").eq("id", id).limit(1).execute().data
        )
        updated = self.supabase.table(table).update(values).eq("id", id).execute().data
        if previous:
            old_values = {key: previous[0].get(key) for key in values}
            self._undo.append(
                lambda: self.supabase.table(table).update(old_values).eq("id", id).execute()
            )
        return updated or []

    def delete(self, table: str, **filters) -> list[dict]:
        query = self.supabase.table(table).delete()
        for column, value in filters.items():
            query = query.eq(column, value)
        deleted = query.execute().data or []
        if deleted:
            self._undo.append(lambda: self._restore(table, deleted))
        return deleted

    def rollback(self):
        while self._undo:
            undo = self._undo.pop()
            try:
                undo()
            except Exception:
                # keep unwinding
                logger.exception(f"rollback_step_failed label={self.label}")

    def _delete_ids(self, table: str, ids: Iterable[str]):
        self.supabase.table(table).delete().in_("id", list(ids)).execute()

    def _restore(self, table: str, rows: list[dict]):
        self.supabase.table(table).insert(rows).execute()
