"""Store contract tests, run against both backends."""

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from bastion.models.entities import Command, Execution, ExecutionStatus, Node
from bastion.store.memory import InMemoryExecutionStore

T0 = datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


def make_command(command_id="cmd-1", **overrides):
    values = dict(
        id=command_id,
        name="Disk usage",
        description="df",
        script="df -h",
        timeout_seconds=60,
        created_at=T0,
    )
    values.update(overrides)
    return Command(**values)


def make_execution(execution_id="exec-1", **overrides):
    values = dict(
        id=execution_id,
        command_id="cmd-1",
        node_id="node-1",
        status=ExecutionStatus.RUNNING,
        started_at=T0,
    )
    values.update(overrides)
    return Execution(**values)


class TestCommandStore:
    def test_get_missing_returns_none(self, stores):
        assert stores.commands.get("cmd-nope") is None

    def test_save_and_get(self, stores):
        command = make_command()

        stores.commands.save(command)

        assert stores.commands.get("cmd-1") == command

    def test_upsert_keeps_one_entity_with_latest_values(self, stores):
        stores.commands.save(make_command(name="first"))
        stores.commands.save(make_command(name="second", script="uptime", timeout_seconds=5))

        listed = stores.commands.list()

        assert len(listed) == 1
        assert listed[0].name == "second"
        assert listed[0].script == "uptime"
        assert listed[0].timeout_seconds == 5

    def test_upsert_keeps_original_created_at(self, stores):
        stores.commands.save(make_command())
        stores.commands.save(make_command(name="renamed", created_at=T0 + timedelta(days=1)))

        assert stores.commands.get("cmd-1").created_at == T0

    def test_delete(self, stores):
        stores.commands.save(make_command("cmd-1"))
        stores.commands.save(make_command("cmd-2"))

        stores.commands.delete("cmd-1")

        assert stores.commands.get("cmd-1") is None
        assert [c.id for c in stores.commands.list()] == ["cmd-2"]

    def test_delete_unknown_is_noop(self, stores):
        stores.commands.delete("cmd-nope")

        assert stores.commands.list() == []

    def test_list_newest_first(self, stores):
        stores.commands.save(make_command("cmd-old", created_at=T0))
        stores.commands.save(make_command("cmd-new", created_at=T0 + timedelta(minutes=1)))

        assert [c.id for c in stores.commands.list()] == ["cmd-new", "cmd-old"]

    def test_returned_entity_is_a_snapshot(self, stores):
        stores.commands.save(make_command())

        fetched = stores.commands.get("cmd-1")
        fetched.name = "mutated"
        listed = stores.commands.list()
        listed[0].script = "rm -rf /"

        stored = stores.commands.get("cmd-1")
        assert stored.name == "Disk usage"
        assert stored.script == "df -h"

    def test_saved_entity_is_copied(self, stores):
        command = make_command()
        stores.commands.save(command)

        command.name = "changed after save"

        assert stores.commands.get("cmd-1").name == "Disk usage"


class TestNodeStore:
    def test_save_get_and_replace(self, stores):
        stores.nodes.save(Node(id="node-1", name="gpu-box", address="http://10.0.0.5:9081"))
        stores.nodes.save(Node(id="node-1", name="gpu-box", address="http://10.0.0.6:9081"))

        assert stores.nodes.get("node-1").address == "http://10.0.0.6:9081"
        assert len(stores.nodes.list()) == 1

    def test_list_sorted_by_name(self, stores):
        stores.nodes.save(Node(id="node-b", name="beta", address="http://b"))
        stores.nodes.save(Node(id="node-a", name="alpha", address="http://a"))

        assert [n.name for n in stores.nodes.list()] == ["alpha", "beta"]


class TestExecutionStore:
    def test_running_execution_round_trips_null_completed_at(self, stores):
        stores.executions.save(make_execution())

        fetched = stores.executions.get("exec-1")

        assert fetched.completed_at is None
        assert fetched.status is ExecutionStatus.RUNNING
        assert fetched.started_at == T0
        assert fetched.started_at.tzinfo is not None

    def test_terminal_update_replaces_mutable_fields(self, stores):
        execution = make_execution()
        stores.executions.save(execution)

        finished = replace(
            execution,
            status=ExecutionStatus.FAILED,
            completed_at=T0 + timedelta(seconds=3),
            stdout="partial",
            stderr="boom",
            exit_code=2,
            duration_ms=3000,
        )
        stores.executions.save(finished)

        listed = stores.executions.list()
        assert len(listed) == 1
        assert listed[0] == finished

    def test_list_started_at_descending(self, stores):
        for offset, execution_id in enumerate(["exec-a", "exec-b", "exec-c"]):
            stores.executions.save(make_execution(execution_id, started_at=T0 + timedelta(seconds=offset)))

        assert [e.id for e in stores.executions.list()] == ["exec-c", "exec-b", "exec-a"]

    def test_history_survives_command_deletion(self, stores):
        stores.commands.save(make_command())
        stores.executions.save(make_execution())

        stores.commands.delete("cmd-1")

        assert stores.executions.get("exec-1").command_id == "cmd-1"


class TestInMemoryConcurrency:
    def test_concurrent_saves_are_all_kept(self):
        store = InMemoryExecutionStore()

        def worker(thread_index):
            for i in range(200):
                store.save(make_execution(f"exec-{thread_index}-{i}", started_at=T0 + timedelta(milliseconds=i)))
                store.list()

        threads = [threading.Thread(target=worker, args=(t,)) for t in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store.list()) == 8 * 200
