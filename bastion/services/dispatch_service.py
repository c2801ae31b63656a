from dataclasses import replace
import logging

from bastion.cancellation import CancellationToken
from bastion.errors import DispatchError, NotFoundError, ValidationError
from bastion.ids import new_id
from bastion.models.entities import (
    Command,
    Execution,
    ExecutionStatus,
    Node,
    RunRequest,
    normalize_timeout,
    utcnow,
)
from bastion.services.runner_client import DEFAULT_DEADLINE_SECONDS, RunnerClient

logger = logging.getLogger(__name__)


def _blank(value):
    return value is None or not str(value).strip()


class DispatchService:
    """Commands, nodes and the dispatch of one command to one node.

    Owns no state of its own: everything lives in the injected stores.
    """

    def __init__(self, stores, runner=None):
        self.commands = stores.commands
        self.nodes = stores.nodes
        self.executions = stores.executions
        self.runner = runner or RunnerClient()

    # Commands

    def list_commands(self):
        return self.commands.list()

    def get_command(self, command_id):
        return self.commands.get(command_id)

    def create_command(self, name, script, description="", timeout_seconds=None):
        if _blank(name):
            raise ValidationError("name is required")
        if _blank(script):
            raise ValidationError("script is required")

        command = Command(
            id=new_id("cmd"),
            name=name,
            description=description or "",
            script=script,
            timeout_seconds=normalize_timeout(timeout_seconds),
            created_at=utcnow(),
        )
        self.commands.save(command)
        logger.info(f"Command {command.id} created ({command.name!r}, timeout {command.timeout_seconds}s)")
        return command

    def delete_command(self, command_id):
        if _blank(command_id):
            raise ValidationError("id is required")
        if self.commands.get(command_id) is None:
            raise NotFoundError(f"unknown command {command_id}")

        self.commands.delete(command_id)
        logger.info(f"Command {command_id} deleted")

    # Nodes

    def list_nodes(self):
        return self.nodes.list()

    def get_node(self, node_id):
        return self.nodes.get(node_id)

    def register_node(self, name, address, node_id=None):
        if _blank(name):
            raise ValidationError("name is required")
        if _blank(address):
            raise ValidationError("address is required")

        node = Node(id=node_id or new_id("node"), name=name, address=address)
        self.nodes.save(node)
        logger.info(f"Node {node.id} registered at {node.address}")
        return node

    # Executions

    def list_executions(self):
        return sorted(self.executions.list(), key=lambda e: e.started_at, reverse=True)

    def get_execution(self, execution_id):
        return self.executions.get(execution_id)

    def start_execution(self, command_id, node_id):
        """Resolve both ids and persist a RUNNING execution.

        Returns (execution, command, node). Nothing is written when either
        id is blank or unknown.
        """
        if _blank(command_id):
            raise ValidationError("command_id is required")
        if _blank(node_id):
            raise ValidationError("node_id is required")

        command = self.commands.get(command_id)
        if command is None:
            raise NotFoundError(f"unknown command {command_id}")
        node = self.nodes.get(node_id)
        if node is None:
            raise NotFoundError(f"unknown node {node_id}")

        execution = Execution(
            id=new_id("exec"),
            command_id=command.id,
            node_id=node.id,
            status=ExecutionStatus.RUNNING,
            started_at=utcnow(),
        )
        self.executions.save(execution)
        logger.info(f"🚀 Execution {execution.id}: {command.id} on {node.id} is RUNNING")
        return execution, command, node

    def complete_execution(self, execution, address, run_request, token=None):
        """Send the run request and write the single terminal update.

        Without a token the call is bounded by DEFAULT_DEADLINE_SECONDS.
        """
        token = token or CancellationToken(timeout=DEFAULT_DEADLINE_SECONDS)
        try:
            result = self.runner.run(address, run_request, token=token)
        except DispatchError as e:
            failed = self.fail_execution(execution, e.message)
            raise DispatchError(e.message, execution=failed) from e
        except Exception as e:
            self.fail_execution(execution, f"request failed: {e}")
            raise

        finished = replace(
            execution,
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.exit_code,
            duration_ms=result.duration_ms,
            completed_at=utcnow(),
            status=ExecutionStatus.SUCCEEDED if result.exit_code == 0 else ExecutionStatus.FAILED,
        )
        self.executions.save(finished)
        logger.info(
            f"Execution {finished.id}: RUNNING → {finished.status.value.upper()} "
            f"(exit {finished.exit_code}, {finished.duration_ms}ms)"
        )
        return finished

    def execute_command(self, command_id, node_id, token=None):
        """Run a command on a node and return the finished execution.

        Raises ValidationError/NotFoundError before anything is persisted.
        Raises DispatchError (with ``.execution`` set to the persisted
        failed record) when the node could not be reached or answered
        badly. A script that exits non-zero is not an error here.
        """
        execution, command, node = self.start_execution(command_id, node_id)
        run_request = build_run_request(command)
        return self.complete_execution(execution, node.address, run_request, token=token)

    def fail_execution(self, execution, message):
        """Terminal write for a dispatch that never got a result."""
        failed = replace(
            execution,
            status=ExecutionStatus.FAILED,
            completed_at=utcnow(),
            exit_code=1,
            stderr=message,
        )
        self.executions.save(failed)
        logger.error(f"❌ Execution {failed.id} failed to dispatch: {message}")
        return failed


def build_run_request(command):
    return RunRequest(script=command.script, timeout_seconds=normalize_timeout(command.timeout_seconds))
