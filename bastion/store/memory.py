import threading
from dataclasses import replace

from bastion.store.base import CommandStore, ExecutionStore, NodeStore, Stores


class _InMemoryStore:
    """Dict keyed by id behind one lock.

    Entities go in and come out as copies so callers can never mutate
    stored state through a reference they hold.
    """

    _reverse = False

    def __init__(self):
        self._lock = threading.Lock()
        self._data = {}

    def _sort_key(self, entity):
        return 0

    def list(self):
        with self._lock:
            items = [replace(entity) for entity in self._data.values()]
        return sorted(items, key=self._sort_key, reverse=self._reverse)

    def get(self, entity_id):
        with self._lock:
            entity = self._data.get(entity_id)
            return replace(entity) if entity is not None else None

    def save(self, entity):
        with self._lock:
            self._data[entity.id] = replace(entity)
        return entity


class InMemoryCommandStore(_InMemoryStore, CommandStore):
    _reverse = True

    def _sort_key(self, command):
        return command.created_at.timestamp() if command.created_at else 0.0

    def save(self, command):
        with self._lock:
            existing = self._data.get(command.id)
            stored = replace(command)
            # created_at is fixed by the first write, as in the SQL upsert
            if existing is not None and existing.created_at is not None:
                stored.created_at = existing.created_at
            self._data[command.id] = stored
        return command

    def delete(self, entity_id):
        with self._lock:
            self._data.pop(entity_id, None)


class InMemoryNodeStore(_InMemoryStore, NodeStore):
    def _sort_key(self, node):
        return node.name


class InMemoryExecutionStore(_InMemoryStore, ExecutionStore):
    _reverse = True

    def _sort_key(self, execution):
        return execution.started_at


def memory_stores():
    return Stores(
        commands=InMemoryCommandStore(),
        nodes=InMemoryNodeStore(),
        executions=InMemoryExecutionStore(),
    )
