"""Persistence contract shared by the in-memory and relational backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar

from bastion.models.entities import Command, Execution, Node

T = TypeVar("T")


class EntityStore(ABC, Generic[T]):
    @abstractmethod
    def list(self) -> List[T]:
        """Return a snapshot of every stored entity."""

    @abstractmethod
    def get(self, entity_id: str) -> Optional[T]:
        """Return a copy of the entity, or None."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Upsert by id: insert if absent, otherwise replace mutable fields."""


class CommandStore(EntityStore[Command]):
    @abstractmethod
    def delete(self, entity_id: str) -> None:
        """Remove the command. Unknown ids are a no-op at this level."""


class NodeStore(EntityStore[Node]):
    pass


class ExecutionStore(EntityStore[Execution]):
    pass


@dataclass
class Stores:
    commands: CommandStore
    nodes: NodeStore
    executions: ExecutionStore
