"""Relational backend on Flask-SQLAlchemy.

Every call needs an application context. Writes are single-statement
upserts keyed on the primary key, so concurrent saves of the same id
resolve to the last one committed.
"""

import logging
from datetime import timezone

from sqlalchemy.dialects import postgresql, sqlite

from bastion.models.command_model import CommandRow, NodeRow
from bastion.models.db import db
from bastion.models.entities import Command, Execution, ExecutionStatus, Node
from bastion.models.execution_model import ExecutionRow
from bastion.store.base import CommandStore, ExecutionStore, NodeStore, Stores

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _as_utc(value):
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _upsert(row_class, values, update_columns):
    insert = _UPSERT_DIALECTS.get(db.engine.dialect.name)
    try:
        if insert is None:
            db.session.merge(row_class(**values))
        else:
            stmt = insert(row_class).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[row_class.id],
                set_={column: stmt.excluded[column] for column in update_columns},
            )
            db.session.execute(stmt)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _select(row_class, *order_by):
    query = db.select(row_class).execution_options(populate_existing=True)
    if order_by:
        query = query.order_by(*order_by)
    return db.session.execute(query).scalars().all()


def _get(row_class, entity_id):
    return db.session.get(row_class, entity_id, populate_existing=True)


class SqlCommandStore(CommandStore):
    @staticmethod
    def _to_entity(row):
        return Command(
            id=row.id,
            name=row.name,
            description=row.description or "",
            script=row.script,
            timeout_seconds=row.timeout_seconds,
            created_at=_as_utc(row.created_at),
        )

    def list(self):
        rows = _select(CommandRow, CommandRow.created_at.desc())
        return [self._to_entity(row) for row in rows]

    def get(self, entity_id):
        row = _get(CommandRow, entity_id)
        return self._to_entity(row) if row is not None else None

    def save(self, command):
        _upsert(
            CommandRow,
            {
                "id": command.id,
                "name": command.name,
                "description": command.description,
                "script": command.script,
                "timeout_seconds": command.timeout_seconds,
                "created_at": command.created_at,
            },
            ["name", "description", "script", "timeout_seconds"],
        )
        return command

    def delete(self, entity_id):
        try:
            db.session.execute(db.delete(CommandRow).where(CommandRow.id == entity_id))
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


class SqlNodeStore(NodeStore):
    @staticmethod
    def _to_entity(row):
        return Node(id=row.id, name=row.name, address=row.address)

    def list(self):
        return [self._to_entity(row) for row in _select(NodeRow, NodeRow.name)]

    def get(self, entity_id):
        row = _get(NodeRow, entity_id)
        return self._to_entity(row) if row is not None else None

    def save(self, node):
        _upsert(
            NodeRow,
            {"id": node.id, "name": node.name, "address": node.address},
            ["name", "address"],
        )
        return node


class SqlExecutionStore(ExecutionStore):
    @staticmethod
    def _to_entity(row):
        return Execution(
            id=row.id,
            command_id=row.command_id,
            node_id=row.node_id,
            status=ExecutionStatus(row.status),
            started_at=_as_utc(row.started_at),
            completed_at=_as_utc(row.completed_at),
            stdout=row.stdout or "",
            stderr=row.stderr or "",
            exit_code=row.exit_code,
            duration_ms=row.duration_ms,
        )

    def list(self):
        rows = _select(ExecutionRow, ExecutionRow.started_at.desc())
        return [self._to_entity(row) for row in rows]

    def get(self, entity_id):
        row = _get(ExecutionRow, entity_id)
        return self._to_entity(row) if row is not None else None

    def save(self, execution):
        _upsert(
            ExecutionRow,
            {
                "id": execution.id,
                "command_id": execution.command_id,
                "node_id": execution.node_id,
                "status": ExecutionStatus(execution.status).value,
                "started_at": execution.started_at,
                # None goes out as a real NULL
                "completed_at": execution.completed_at,
                "stdout": execution.stdout,
                "stderr": execution.stderr,
                "exit_code": execution.exit_code,
                "duration_ms": execution.duration_ms,
            },
            ["status", "completed_at", "stdout", "stderr", "exit_code", "duration_ms"],
        )
        return execution


def sql_stores():
    return Stores(
        commands=SqlCommandStore(),
        nodes=SqlNodeStore(),
        executions=SqlExecutionStore(),
    )
