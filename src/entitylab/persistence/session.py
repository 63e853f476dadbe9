"""
Session management coordinating the adapter, persistence context, and unit of work.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Type

from ..adapters.base import (
    AdapterError,
    AdapterIntegrityError,
    AdapterLockError,
    ConnectionConfig,
    DatabaseAdapter,
)
from ..core.lifecycle import EntityState, LockMode, ensure_transition
from ..core.model import Model
from ..core.person import Person
from ..dialects.base import Dialect
from ..errors import (
    ConcurrencyConflictError,
    EntityLabError,
    EntityNotFoundError,
    LockError,
    PersistenceError,
    RawQueryError,
    SessionClosedError,
)
from ..hooks import hooks
from ..schema import SchemaBuilder
from ..security.redaction import redact_params
from ..utils import get_logger, time_call
from .context import PersistenceContext
from .reference import EntityReference
from .transaction import TransactionError, TransactionManager
from .unit_of_work import UnitOfWork


class Session:
    """
    One connection, one persistence context, at most one active transaction.

    Writes (persist, merge, remove, flush, lock) require an explicitly begun
    transaction; there is no ambient or implicit transaction. Caller-owned
    values are never adopted as managed instances: the context holds its own
    copies, so registry values and store state stay independently mutable.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        connection_config: Optional[ConnectionConfig] = None,
        dsn: Optional[str] = None,
    ) -> None:
        self.adapter = adapter
        self.dialect: Dialect = adapter.dialect
        if connection_config is not None and dsn is not None:
            raise ValueError("Provide either connection_config or dsn, not both.")
        if connection_config is None:
            connection_config = ConnectionConfig.from_dsn(dsn or "sqlite:///:memory:")
        self.connection_config = connection_config
        self.context = PersistenceContext()
        self.unit_of_work = UnitOfWork()
        self.transaction_manager = TransactionManager(adapter)
        self.hooks = hooks
        self.logger = get_logger("persistence.session")
        self._closed = False
        with self._store_errors("connect"):
            self.adapter.connect(self.connection_config)

    # ------------------------------------------------------------------ #
    # Context management
    # ------------------------------------------------------------------ #
    def __enter__(self) -> "Session":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self.is_transaction_active:
                if exc_type:
                    self.rollback()
                else:
                    self.commit()
        finally:
            self.close()

    @contextmanager
    def transaction(self) -> Iterator["Session"]:
        self.begin()
        try:
            yield self
        except Exception:
            if self.is_transaction_active:
                self.rollback()
            raise
        else:
            self.commit()

    # ------------------------------------------------------------------ #
    # Introspection and teardown
    # ------------------------------------------------------------------ #
    @property
    def is_open(self) -> bool:
        return not self._closed

    @property
    def is_transaction_active(self) -> bool:
        return not self._closed and self.transaction_manager.is_active

    def close(self) -> None:
        if self._closed:
            return
        if self.transaction_manager.is_active:
            self.transaction_manager.rollback_quietly()
            self._discard_transaction_changes()
        self.adapter.close()
        self.context.clear()
        self.unit_of_work.clear()
        self._closed = True
        self.logger.info("Session closed")

    def create_schema(self, *models: Type[Model]) -> None:
        self._ensure_open()
        builder = SchemaBuilder(self.dialect)
        with self._store_errors("create schema"):
            for model in models or (Person,):
                self.execute(builder.create_table_sql(model))

    # ------------------------------------------------------------------ #
    # Transaction boundaries
    # ------------------------------------------------------------------ #
    def begin(self) -> None:
        self._ensure_open()
        self.transaction_manager.begin()

    def commit(self) -> None:
        self._ensure_open()
        if not self.transaction_manager.is_active:
            raise TransactionError("No active transaction to commit.")
        try:
            self.flush()
            self._verify_versions()
        except Exception:
            self.transaction_manager.rollback_quietly()
            self._discard_transaction_changes()
            raise
        try:
            with self._store_errors("commit"):
                self.transaction_manager.commit()
        except EntityLabError:
            self._discard_transaction_changes()
            raise
        self.unit_of_work.clear()
        self.hooks.fire("after_commit", None, session=self)

    def rollback(self) -> None:
        self._ensure_open()
        self.transaction_manager.rollback()
        self._discard_transaction_changes()
        self.hooks.fire("after_rollback", None, session=self)

    # ------------------------------------------------------------------ #
    # Lifecycle operations
    # ------------------------------------------------------------------ #
    def persist(self, entity: Model) -> Model:
        """
        Insert a transient entity and return the managed copy.

        The store-assigned id and the initial version are written back onto
        ``entity`` itself.
        """
        self._require_transaction("persist")
        model = entity.__class__
        if entity.pk is not None:
            state = self.context.state_of(entity)
            raise PersistenceError(
                f"Cannot persist {model.__name__} with id {entity.pk}: "
                f"entity already has an identity ({state.value})."
            )
        self.hooks.fire("pre_persist", entity, session=self)
        version_name = self._version_name(model)
        if version_name:
            setattr(entity, version_name, 0)
        with self._store_errors("persist"):
            pk = self._insert(entity)
        setattr(entity, self._pk_name(model), pk)
        entity.mark_clean()
        self.unit_of_work.register_inserted(entity)

        managed = entity.copy()
        managed.mark_clean()
        self.context.add(managed)
        self.logger.debug("Persisted %s id=%s", model.__name__, pk)
        self.hooks.fire("post_persist", managed, session=self)
        return managed

    def merge(self, entity: Model | EntityReference) -> Model:
        """
        Copy the state of a detached value onto its managed instance.

        Raises :class:`ConcurrencyConflictError` when the value's version is
        stale or its row no longer exists.
        """
        self._require_transaction("merge")
        if isinstance(entity, EntityReference):
            return entity.unwrap()
        model = entity.__class__
        pk = entity.pk
        if pk is None:
            return self.persist(entity.copy())
        ensure_transition(
            self.context.state_for(model, pk), EntityState.MANAGED, what=f"{model.__name__} {pk}"
        )

        managed = self.context.get(model, pk)
        if managed is None:
            with self._store_errors("merge"):
                values = self._select_row(model, pk)
            if values is None:
                raise ConcurrencyConflictError(
                    f"{model.__name__} with id {pk} no longer exists in the store."
                )
            managed = self.hydrate(model, values)
        if managed is entity:
            return managed
        if entity.lock_version != managed.lock_version:
            raise ConcurrencyConflictError(
                f"Stale {model.__name__} id {pk}: version {entity.lock_version} "
                f"does not match stored version {managed.lock_version}."
            )
        for field in model._meta.mutable_fields():
            name = field.require_name()
            setattr(managed, name, getattr(entity, name))
        return managed

    def remove(self, entity: Model | EntityReference) -> None:
        self._require_transaction("remove")
        model, pk = self._identity(entity)
        what = f"{model.__name__} {pk}"
        state = self.context.state_for(model, pk)
        if state is EntityState.DETACHED:
            # Removal always goes through the managed instance.
            if self.find(model, pk) is None:
                raise EntityNotFoundError(f"Unable to find {model.__name__} with id {pk}")
            state = EntityState.MANAGED
        ensure_transition(state, EntityState.REMOVED, what=what)
        managed = self.context.get(model, pk)
        if managed is None:
            raise PersistenceError(f"Cannot remove {what}: entity is not managed.")
        self.hooks.fire("pre_remove", managed, session=self)
        with self._store_errors("remove"):
            self._delete(managed)
        self.context.mark_removed(managed)
        self.unit_of_work.register_removed(managed)
        self.logger.debug("Removed %s id=%s", model.__name__, pk)
        self.hooks.fire("post_remove", managed, session=self)

    def find(self, model: Type[Model], pk: Any) -> Optional[Model]:
        self._ensure_open()
        if pk is None or self.context.is_removed(model, pk):
            return None
        managed = self.context.get(model, pk)
        if managed is not None:
            return managed
        with self._store_errors("find"):
            values = self._select_row(model, pk)
        if values is None:
            return None
        return self.hydrate(model, values)

    def get_reference(self, model: Type[Model], pk: Any) -> Model | EntityReference:
        self._ensure_open()
        managed = self.context.get(model, pk)
        if managed is not None:
            return managed
        return EntityReference(self, model, pk)

    def detach(self, entity: Model | EntityReference) -> None:
        self._ensure_open()
        model, pk = self._identity(entity)
        managed = self.context.get(model, pk)
        if managed is None:
            return
        self.context.evict(managed)
        self.unit_of_work.forget(managed)
        self.logger.debug("Detached %s id=%s", model.__name__, pk)

    def refresh(self, entity: Model | EntityReference) -> Model:
        """
        Overwrite the managed instance, and ``entity`` if it is a different
        object, with the row currently in the store.
        """
        self._ensure_open()
        model, pk = self._identity(entity)
        managed = self.context.get(model, pk) if pk is not None else None
        if managed is None and isinstance(entity, EntityReference) and not entity.is_initialized:
            managed = entity.unwrap()
        if managed is None:
            state = self.context.state_for(model, pk)
            raise PersistenceError(
                f"Cannot refresh {model.__name__} {pk}: entity is {state.value}, not managed."
            )
        with self._store_errors("refresh"):
            values = self._select_row(model, pk)
        if values is None:
            self.context.evict(managed)
            raise EntityNotFoundError(f"{model.__name__} with id {pk} no longer exists in the store.")
        managed.apply(values)
        managed.mark_clean()
        self.unit_of_work.forget(managed)
        target = entity.unwrap() if isinstance(entity, EntityReference) else entity
        if target is not managed:
            target.apply(values)
            target.mark_clean()
        self.hooks.fire("post_load", managed, session=self)
        return managed

    def lock(self, entity: Model | EntityReference, mode: LockMode | str) -> None:
        self._ensure_open()
        try:
            lock_mode = LockMode.parse(mode)
        except ValueError as exc:
            raise LockError(str(exc)) from exc
        if not self.transaction_manager.is_active:
            raise LockError(f"{lock_mode.value} lock requires an active transaction.")
        model, pk = self._identity(entity)
        managed = self.context.get(model, pk) if pk is not None else None
        if managed is None and isinstance(entity, EntityReference) and not entity.is_initialized:
            managed = entity.unwrap()
        if managed is None:
            state = self.context.state_for(model, pk)
            raise PersistenceError(
                f"Cannot lock {model.__name__} {pk}: entity is {state.value}, not managed."
            )

        if lock_mode is LockMode.NONE:
            return
        if lock_mode is LockMode.OPTIMISTIC:
            self.unit_of_work.register_version_check(managed)
            return
        if lock_mode is LockMode.OPTIMISTIC_FORCE_INCREMENT:
            self.unit_of_work.register_version_bump(managed)
            return

        meta = model._meta
        statement = self.dialect.lock_statement(
            meta.table_name,
            meta.primary_key.column_name(),  # type: ignore[union-attr]
            meta.version_field.column_name(),  # type: ignore[union-attr]
            exclusive=lock_mode is LockMode.PESSIMISTIC_WRITE,
        )
        try:
            cursor = self.execute(statement.sql, (pk,))
            if statement.returns_rows:
                row = cursor.fetchone()
                stored_version = row[0] if row is not None else None
            else:
                stored_version = self._read_version(model, pk) if cursor.rowcount else None
        except AdapterLockError as exc:
            raise LockError(
                f"{lock_mode.value} lock on {model.__name__} {pk} not granted: {exc}"
            ) from exc
        except AdapterError as exc:
            raise PersistenceError(f"lock failed: {exc}") from exc

        if stored_version is None:
            self.context.evict(managed)
            raise EntityNotFoundError(f"{model.__name__} with id {pk} no longer exists in the store.")
        if stored_version != managed.lock_version:
            raise ConcurrencyConflictError(
                f"Stale {model.__name__} id {pk}: locked row has version {stored_version}, "
                f"managed instance has {managed.lock_version}."
            )
        self.logger.info("Acquired %s lock on %s id=%s", lock_mode.value, model.__name__, pk)

    def contains(self, entity: Model | EntityReference) -> bool:
        self._ensure_open()
        model, pk = self._identity(entity)
        return self.context.state_for(model, pk) is EntityState.MANAGED

    def state_of(self, entity: Model | EntityReference) -> EntityState:
        model, pk = self._identity(entity)
        return self.context.state_for(model, pk)

    def clear(self) -> None:
        self._ensure_open()
        self.context.clear()
        self.unit_of_work.reset_tracking()
        self.logger.debug("Persistence context cleared")

    def flush(self) -> None:
        """
        Write pending changes of managed instances with version checks.
        """
        self._require_transaction("flush")
        self.unit_of_work.collect_dirty(self.context.values())
        bumped = set()
        for instance in sorted(self.unit_of_work.dirty, key=lambda item: item.pk):
            if self._flush_update(instance):
                bumped.add(instance)
        for instance in self.unit_of_work.version_bumps - bumped:
            with self._store_errors("flush"):
                self._update(instance, {}, instance.lock_version + 1)
            instance.mark_clean()
        self.unit_of_work.dirty.clear()
        self.unit_of_work.version_bumps.clear()

    # ------------------------------------------------------------------ #
    # Query support
    # ------------------------------------------------------------------ #
    def execute(self, sql: str, params: Iterable[Any] | None = None):
        self._ensure_open()
        param_list = list(params or [])
        with time_call(
            "session.execute",
            self.logger,
            sql=sql,
            params=redact_params(param_list),
            threshold_ms=getattr(self.adapter, "slow_query_ms", 200),
        ):
            return self.adapter.execute(sql, param_list)

    def load_all(self, model: Type[Model], sql: str, params: Iterable[Any] = ()) -> List[Model]:
        """
        Run a SELECT over ``model``'s columns and hydrate every row.
        """
        with self._store_errors("query"):
            cursor = self.execute(sql, params)
            names = self.column_names(cursor)
            rows = cursor.fetchall()
        return [self.hydrate(model, self.values_from_row(model, names, row)) for row in rows]

    def fetch_raw(self, sql: str, params: Iterable[Any] = ()) -> Tuple[List[str], List[Any]]:
        """
        Run native SQL and return ``(column names, rows)``.

        Store failures surface as :class:`RawQueryError`.
        """
        try:
            cursor = self.execute(sql, params)
            if cursor.description is None:
                return [], []
            return self.column_names(cursor), list(cursor.fetchall())
        except AdapterError as exc:
            raise RawQueryError(f"Native query failed: {exc}") from exc

    def hydrate(self, model: Type[Model], values: Dict[str, Any]) -> Model:
        """
        Return the managed instance for a loaded row, registering it if new.

        An instance already managed wins over the row, as it may hold
        unflushed changes.
        """
        pk = values.get(self._pk_name(model))
        if pk is None:
            return model(**values)
        managed = self.context.get(model, pk)
        if managed is not None:
            return managed
        instance = model(**values)
        instance.mark_clean()
        self.context.add(instance)
        self.hooks.fire("post_load", instance, session=self)
        return instance

    @staticmethod
    def column_names(cursor) -> List[str]:
        return [column[0] for column in cursor.description or ()]

    def values_from_row(
        self, model: Type[Model], names: Sequence[str], row: Sequence[Any]
    ) -> Dict[str, Any]:
        by_column = {field.column_name(): field.require_name() for field in model._meta.get_fields()}
        return {by_column.get(name, name): value for name, value in zip(names, row)}

    # ------------------------------------------------------------------ #
    # Store primitives
    # ------------------------------------------------------------------ #
    def _select_row(self, model: Type[Model], pk: Any) -> Optional[Dict[str, Any]]:
        meta = model._meta
        select_list = ", ".join(
            self.dialect.quote_identifier(field.column_name()) for field in meta.get_fields()
        )
        pk_column = self.dialect.quote_identifier(meta.primary_key.column_name())  # type: ignore[union-attr]
        sql = (
            f"SELECT {select_list} FROM {self.dialect.format_table(meta.table_name)} "
            f"WHERE {pk_column} = {self.dialect.parameter_placeholder()}"
        )
        cursor = self.execute(sql, (pk,))
        row = cursor.fetchone()
        if row is None:
            return None
        return self.values_from_row(model, self.column_names(cursor), row)

    def _read_version(self, model: Type[Model], pk: Any) -> Optional[int]:
        meta = model._meta
        sql = (
            f"SELECT {self.dialect.quote_identifier(meta.version_field.column_name())} "  # type: ignore[union-attr]
            f"FROM {self.dialect.format_table(meta.table_name)} "
            f"WHERE {self.dialect.quote_identifier(meta.primary_key.column_name())} = "  # type: ignore[union-attr]
            f"{self.dialect.parameter_placeholder()}"
        )
        row = self.execute(sql, (pk,)).fetchone()
        return None if row is None else row[0]

    def _insert(self, entity: Model) -> Any:
        meta = entity._meta
        pk_field = meta.primary_key
        fields = [field for field in meta.get_fields() if not field.primary_key]
        columns = ", ".join(self.dialect.quote_identifier(field.column_name()) for field in fields)
        placeholders = ", ".join(self.dialect.parameter_placeholder() for _ in fields)
        pk_column = pk_field.column_name()  # type: ignore[union-attr]
        sql = f"INSERT INTO {self.dialect.format_table(meta.table_name)} ({columns}) VALUES ({placeholders})"
        if self.dialect.capabilities.supports_returning:
            sql += self.dialect.returning_clause([pk_column])
        cursor = self.execute(sql, [getattr(entity, field.require_name()) for field in fields])
        return self.adapter.last_insert_id(cursor, meta.table_name, pk_column)

    def _update(self, instance: Model, changes: Dict[str, Any], new_version: int) -> None:
        meta = instance._meta
        quote = self.dialect.quote_identifier
        placeholder = self.dialect.parameter_placeholder()
        assignments: List[Tuple[str, Any]] = [
            (meta.get_field(name).column_name(), value) for name, value in changes.items()
        ]
        version_field = meta.version_field
        if version_field is not None:
            assignments.append((version_field.column_name(), new_version))
        set_sql = ", ".join(f"{quote(column)} = {placeholder}" for column, _ in assignments)
        params = [value for _, value in assignments]
        where_sql = f"{quote(meta.primary_key.column_name())} = {placeholder}"  # type: ignore[union-attr]
        params.append(instance.pk)
        if version_field is not None:
            where_sql += f" AND {quote(version_field.column_name())} = {placeholder}"
            params.append(instance.lock_version)
        sql = f"UPDATE {self.dialect.format_table(meta.table_name)} SET {set_sql} WHERE {where_sql}"
        cursor = self.execute(sql, params)
        if cursor.rowcount == 0:
            raise ConcurrencyConflictError(
                f"{instance.__class__.__name__} id {instance.pk} was changed or removed by "
                f"another transaction (expected version {instance.lock_version})."
            )
        if version_field is not None:
            setattr(instance, version_field.require_name(), new_version)

    def _delete(self, instance: Model) -> None:
        meta = instance._meta
        quote = self.dialect.quote_identifier
        placeholder = self.dialect.parameter_placeholder()
        where_sql = f"{quote(meta.primary_key.column_name())} = {placeholder}"  # type: ignore[union-attr]
        params: List[Any] = [instance.pk]
        if meta.version_field is not None:
            where_sql += f" AND {quote(meta.version_field.column_name())} = {placeholder}"
            params.append(instance.lock_version)
        cursor = self.execute(
            f"DELETE FROM {self.dialect.format_table(meta.table_name)} WHERE {where_sql}", params
        )
        if cursor.rowcount == 0:
            raise ConcurrencyConflictError(
                f"{instance.__class__.__name__} id {instance.pk} was changed or removed by "
                f"another transaction (expected version {instance.lock_version})."
            )

    def _flush_update(self, instance: Model) -> bool:
        changes = instance.changed_fields()
        if not changes:
            return False
        self.hooks.fire("pre_update", instance, session=self, changes=dict(changes))
        with self._store_errors("flush"):
            self._update(instance, changes, instance.lock_version + 1)
        instance.mark_clean()
        self.hooks.fire("post_update", instance, session=self)
        return True

    def _verify_versions(self) -> None:
        for instance in self.unit_of_work.version_checks:
            with self._store_errors("version check"):
                stored = self._read_version(instance.__class__, instance.pk)
            if stored != instance.lock_version:
                raise ConcurrencyConflictError(
                    f"{instance.__class__.__name__} id {instance.pk} changed since it was locked "
                    f"(version {instance.lock_version}, stored {stored})."
                )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Session is closed.")

    def _require_transaction(self, action: str) -> None:
        self._ensure_open()
        if not self.transaction_manager.is_active:
            raise TransactionError(f"{action} requires an active transaction.")

    def _discard_transaction_changes(self) -> None:
        """
        Undo what a rolled-back transaction did to in-memory state.

        Identities assigned by rolled-back inserts are cleared again, removals
        are forgotten, and every managed instance becomes detached.
        """
        for value in self.unit_of_work.inserted:
            model = value.__class__
            setattr(value, self._pk_name(model), None)
            version_name = self._version_name(model)
            if version_name:
                setattr(value, version_name, 0)
        for instance in self.unit_of_work.removed:
            self.context.unmark_removed(instance.__class__, instance.pk)
        self.context.clear()
        self.unit_of_work.clear()
        self.logger.debug("Discarded in-memory changes of rolled back transaction")

    @staticmethod
    def _identity(entity: Model | EntityReference) -> Tuple[Type[Model], Any]:
        if isinstance(entity, EntityReference):
            return entity.model, entity.pk
        return entity.__class__, entity.pk

    @staticmethod
    def _pk_name(model: Type[Model]) -> str:
        return model._meta.primary_key.require_name()  # type: ignore[union-attr]

    @staticmethod
    def _version_name(model: Type[Model]) -> Optional[str]:
        version_field = model._meta.version_field
        return version_field.require_name() if version_field else None

    @contextmanager
    def _store_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except AdapterIntegrityError as exc:
            raise PersistenceError(f"{action} violates a store constraint: {exc}") from exc
        except AdapterLockError as exc:
            raise LockError(f"{action} could not acquire a lock: {exc}") from exc
        except AdapterError as exc:
            raise PersistenceError(f"{action} failed: {exc}") from exc
