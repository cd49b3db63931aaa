from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional

from sqlalchemy import ColumnElement, Table, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.callbacks import materialize_locale, register_callbacks
from ..core.capabilities import DELETED_AT, LANGUAGE_CODE, classify
from ..core.context import L10nContext, Mode, current_context, global_locale
from ..core.errors import L10nError

log = logging.getLogger(__name__)

Hook = Callable[["Client", "Statement"], Awaitable[None]]

OPERATIONS = ("create", "update", "delete", "query", "row")


@dataclass
class Statement:
    kind: str
    model: type
    ctx: L10nContext
    instance: Any = None
    where: list[Any] = field(default_factory=list)
    order_by: list[Any] = field(default_factory=list)
    values: Optional[dict[str, Any]] = None
    columns: tuple[Any, ...] = ()
    limit: Optional[int] = None
    aggregate: bool = False
    unscoped: bool = False
    rows_affected: int = 0
    result: Any = None

    @property
    def table(self) -> Table:
        return self.model.__table__


class Processor:
    """Ordered, named hooks for one kind of operation."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._hooks: list[tuple[str, Hook]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self._hooks]

    def get(self, name: str) -> Optional[Hook]:
        for hook_name, fn in self._hooks:
            if hook_name == name:
                return fn
        return None

    def _index(self, name: str) -> int:
        for i, (hook_name, _) in enumerate(self._hooks):
            if hook_name == name:
                return i
        raise KeyError(f"no {self.kind} hook named {name!r}")

    def register(self, name: str, fn: Hook, *, before: Optional[str] = None, after: Optional[str] = None) -> None:
        if self.get(name) is not None:
            raise ValueError(f"{self.kind} hook {name!r} is already registered")
        if before is not None:
            index = self._index(before)
        elif after is not None:
            index = self._index(after) + 1
        else:
            index = len(self._hooks)
        self._hooks.insert(index, (name, fn))
        log.debug("Registered %s hook %s at %d", self.kind, name, index)

    def remove(self, name: str) -> None:
        del self._hooks[self._index(name)]

    async def execute(self, client: "Client", stmt: Statement) -> Statement:
        for _, fn in list(self._hooks):
            await fn(client, stmt)
        return stmt


class Callbacks:
    def __init__(self) -> None:
        self.create = Processor("create")
        self.update = Processor("update")
        self.delete = Processor("delete")
        self.query = Processor("query")
        self.row = Processor("row")

    def __getitem__(self, kind: str) -> Processor:
        if kind not in OPERATIONS:
            raise KeyError(kind)
        return getattr(self, kind)


class RawClient:
    """Statements executed directly on the session, never through hooks."""

    def __init__(self, session: AsyncSession) -> None:
        self.s = session

    async def insert(self, model: type, values: dict[str, Any]) -> tuple[Any, ...]:
        result = await self.s.execute(insert(model.__table__).values(values))
        return tuple(result.inserted_primary_key or ())

    async def update_columns(self, model: type, values: dict[str, Any], *where: ColumnElement[bool]) -> int:
        result = await self.s.execute(update(model.__table__).where(*where).values(values))
        return result.rowcount

    async def delete(self, model: type, *where: ColumnElement[bool]) -> int:
        result = await self.s.execute(delete(model.__table__).where(*where))
        return result.rowcount

    async def count(self, model: type, *where: ColumnElement[bool]) -> int:
        q = select(func.count()).select_from(model.__table__).where(*where)
        return int((await self.s.execute(q)).scalar_one())


def _key_predicates(stmt: Statement) -> list[ColumnElement[bool]]:
    caps = classify(stmt.model)
    preds = []
    for column in stmt.table.primary_key.columns:
        value = caps.get(stmt.instance, column.name)
        if value is not None:
            preds.append(column == value)
    return preds


def _live(stmt: Statement) -> list[ColumnElement[bool]]:
    if classify(stmt.model).soft_delete and not stmt.unscoped:
        return [stmt.table.c[DELETED_AT].is_(None)]
    return []


def _hydrate(model: type, row: Any) -> Any:
    caps = classify(model)
    obj = model()
    for name, value in row._mapping.items():
        caps.set(obj, name, value)
    return obj


async def _create(client: "Client", stmt: Statement) -> None:
    caps = classify(stmt.model)
    values = {name: caps.get(stmt.instance, name) for name in caps.keys}
    key = await client.raw.insert(stmt.model, {k: v for k, v in values.items() if v is not None})
    for column, value in zip(stmt.table.primary_key.columns, key):
        if caps.get(stmt.instance, column.name) is None:
            caps.set(stmt.instance, column.name, value)
    stmt.rows_affected = 1


async def _update(client: "Client", stmt: Statement) -> None:
    caps = classify(stmt.model)
    if stmt.values is not None:
        for name, value in stmt.values.items():
            caps.set(stmt.instance, name, value)
        values = dict(stmt.values)
    else:
        pk = {c.name for c in stmt.table.primary_key.columns}
        values = {name: caps.get(stmt.instance, name) for name in caps.keys if name not in pk}
    if not values:
        return
    where = _key_predicates(stmt) + stmt.where + _live(stmt)
    stmt.rows_affected = await client.raw.update_columns(stmt.model, values, *where)


async def _delete(client: "Client", stmt: Statement) -> None:
    if not stmt.where:
        raise L10nError(f"refusing to delete {stmt.model.__name__} rows without conditions")
    live = _live(stmt)
    if live:
        stmt.rows_affected = await client.raw.update_columns(
            stmt.model, {DELETED_AT: datetime.utcnow()}, *stmt.where, *live
        )
    else:
        stmt.rows_affected = await client.raw.delete(stmt.model, *stmt.where)


def _select(stmt: Statement, *columns: Any):
    q = select(*columns).select_from(stmt.table).where(*stmt.where, *_live(stmt))
    if stmt.order_by and not stmt.aggregate:
        q = q.order_by(*stmt.order_by)
    if stmt.limit is not None:
        q = q.limit(stmt.limit)
    return q


async def _query(client: "Client", stmt: Statement) -> None:
    rows = (await client.s.execute(_select(stmt, *stmt.table.c))).all()
    stmt.result = [_hydrate(stmt.model, row) for row in rows]
    stmt.rows_affected = len(stmt.result)


async def _row_query(client: "Client", stmt: Statement) -> None:
    stmt.result = (await client.s.execute(_select(stmt, *stmt.columns))).all()
    stmt.rows_affected = len(stmt.result)


@dataclass(frozen=True)
class LocalizeRequest:
    """Copy a record from ``source`` (Global when unset) into ``targets``."""

    targets: tuple[str, ...]
    source: Optional[str] = None


class Client:
    """Runs create/read/update/delete operations through named hook chains.

    Records handed to and returned by the client are detached value objects;
    the client never adds them to the session and never commits.
    """

    def __init__(self, session: AsyncSession, context: Optional[L10nContext] = None) -> None:
        self.s = session
        self.context = context
        self.raw = RawClient(session)
        self.callbacks = Callbacks()
        self.callbacks.create.register("core:create", _create)
        self.callbacks.update.register("core:update", _update)
        self.callbacks.delete.register("core:delete", _delete)
        self.callbacks.query.register("core:query", _query)
        self.callbacks.row.register("core:row_query", _row_query)

    def _context(self, ctx: Optional[L10nContext]) -> L10nContext:
        return ctx or self.context or current_context()

    async def create(self, obj: Any, *, ctx: Optional[L10nContext] = None) -> Any:
        stmt = Statement("create", type(obj), self._context(ctx), instance=obj)
        await self.callbacks.create.execute(self, stmt)
        return obj

    async def update(
        self,
        obj: Any,
        values: Optional[dict[str, Any]] = None,
        *,
        ctx: Optional[L10nContext] = None,
        unscoped: bool = False,
    ) -> int:
        """Save ``obj``, or only ``values`` when given; returns rows affected."""
        caps = classify(obj)
        if values is not None:
            # accept attribute keys as well as column names
            by_key = {key: name for name, key in caps.keys.items()}
            values = {by_key.get(k, k): v for k, v in values.items()}
        stmt = Statement("update", type(obj), self._context(ctx), instance=obj, values=values, unscoped=unscoped)
        await self.callbacks.update.execute(self, stmt)
        return stmt.rows_affected

    async def delete(
        self,
        entity: Any,
        *where: ColumnElement[bool],
        ctx: Optional[L10nContext] = None,
        unscoped: bool = False,
    ) -> int:
        """Delete an instance, or rows of a mapped class matching ``where``."""
        model = entity if isinstance(entity, type) else type(entity)
        stmt = Statement("delete", model, self._context(ctx), unscoped=unscoped)
        if not isinstance(entity, type):
            stmt.instance = entity
            stmt.where.extend(_key_predicates(stmt))
        stmt.where.extend(where)
        await self.callbacks.delete.execute(self, stmt)
        return stmt.rows_affected

    async def query(
        self,
        model: type,
        *where: ColumnElement[bool],
        order_by: Iterable[Any] = (),
        limit: Optional[int] = None,
        ctx: Optional[L10nContext] = None,
        unscoped: bool = False,
    ) -> list[Any]:
        stmt = Statement(
            "query", model, self._context(ctx), where=list(where), order_by=list(order_by),
            limit=limit, unscoped=unscoped,
        )
        await self.callbacks.query.execute(self, stmt)
        return stmt.result

    async def first(self, model: type, *where: ColumnElement[bool], **kwargs: Any) -> Optional[Any]:
        rows = await self.query(model, *where, limit=1, **kwargs)
        return rows[0] if rows else None

    async def pluck(
        self,
        model: type,
        column: Any,
        *where: ColumnElement[bool],
        ctx: Optional[L10nContext] = None,
        unscoped: bool = False,
    ) -> list[Any]:
        if isinstance(column, str):
            column = model.__table__.c[column]
        stmt = Statement("row", model, self._context(ctx), where=list(where), columns=(column,), unscoped=unscoped)
        await self.callbacks.row.execute(self, stmt)
        return [row[0] for row in stmt.result]

    async def count(
        self,
        model: type,
        *where: ColumnElement[bool],
        ctx: Optional[L10nContext] = None,
        unscoped: bool = False,
    ) -> int:
        stmt = Statement(
            "row", model, self._context(ctx), where=list(where), columns=(func.count(),),
            aggregate=True, unscoped=unscoped,
        )
        await self.callbacks.row.execute(self, stmt)
        return int(stmt.result[0][0])

    async def localize(self, obj: Any, request: LocalizeRequest, *, ctx: Optional[L10nContext] = None) -> list[Any]:
        """Create missing locale variants of ``obj`` from its ``source`` row.

        Targets that already have a live variant are skipped. Creation goes
        through the create hooks, so non-creatable classes are rejected.
        """
        caps = classify(obj)
        model = type(obj)
        if not caps.localizable:
            raise L10nError(f"{model.__name__} is not localizable")

        base = self._context(ctx)
        source = request.source or global_locale()
        table = model.__table__
        where = [table.c[name] == value for name, value in caps.identity_values(obj).items()]
        record = await self.first(model, *where, table.c[LANGUAGE_CODE] == source, ctx=base.with_mode(Mode.UNSCOPED))
        if record is None:
            raise L10nError(f"{model.__name__} has no {source} record to localize from")

        created = []
        for target in request.targets:
            if target == source:
                continue
            copy = model()
            for name in caps.keys:
                caps.set(copy, name, caps.get(record, name))
            if await materialize_locale(self, copy, target, base) is not None:
                created.append(copy)
        log.info("Localized %s %s from %s into %d locale(s)", model.__name__, caps.identity_values(obj), source, len(created))
        return created


def localized(session: AsyncSession, context: Optional[L10nContext] = None) -> Client:
    """Build a client with the localization hooks registered."""
    client = Client(session, context)
    register_callbacks(client)
    return client
