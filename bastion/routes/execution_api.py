import logging

from flask import current_app
from flask_restx import Namespace, Resource, fields

from bastion.cancellation import CancellationToken
from bastion.errors import DispatchError, ValidationError
from bastion.extensions import get_service
from bastion.routes.fields_ext import EnumValue
from bastion.services.dispatch_service import build_run_request

logger = logging.getLogger(__name__)

# Create namespaces
ns = Namespace('executions', description='Execution history')
execute_ns = Namespace('execute', description='Dispatch a command to a node')

# Define models for Swagger documentation
execution_model = ns.model('Execution', {
    'id': fields.String(description='Execution ID'),
    'command_id': fields.String(description='Command that ran'),
    'node_id': fields.String(description='Node it ran on'),
    'status': EnumValue(description='Execution status', enum=['pending', 'running', 'succeeded', 'failed']),
    'started_at': fields.DateTime(dt_format='iso8601', description='Dispatch timestamp'),
    'completed_at': fields.DateTime(dt_format='iso8601', description='Completion timestamp'),
    'stdout': fields.String(description='Standard output'),
    'stderr': fields.String(description='Standard error'),
    'exit_code': fields.Integer(description='Process exit code'),
    'duration_ms': fields.Integer(description='Script run time in milliseconds')
})

execute_request_model = execute_ns.model('ExecuteRequest', {
    'command_id': fields.String(required=True, description='Command to run'),
    'node_id': fields.String(required=True, description='Node to run it on')
})

error_model = ns.model('Error', {
    'message': fields.String(description='Error message')
})


def _execute_payload():
    data = execute_ns.payload or {}
    if not isinstance(data, dict):
        raise ValidationError('payload must be a JSON object')
    return data.get('command_id'), data.get('node_id')


@ns.route('')
class ExecutionList(Resource):
    @ns.doc('list_executions')
    @ns.marshal_list_with(execution_model)
    def get(self):
        """List executions, most recently started first"""
        return get_service().list_executions(), 200


@ns.route('/<string:execution_id>')
@ns.param('execution_id', 'The execution identifier')
class ExecutionDetail(Resource):
    @ns.doc('get_execution')
    @ns.marshal_with(execution_model)
    @ns.response(404, 'Execution not found', error_model)
    @ns.response(200, 'Success')
    def get(self, execution_id):
        """Retrieve execution status and result"""
        execution = get_service().get_execution(execution_id)

        if execution is None:
            ns.abort(404, f"unknown execution {execution_id}")

        return execution, 200


@execute_ns.route('')
class Execute(Resource):
    @execute_ns.doc('execute_command')
    @execute_ns.expect(execute_request_model, validate=False)
    @execute_ns.marshal_with(execution_model)
    @execute_ns.response(200, 'Dispatch finished; see status for the outcome')
    @execute_ns.response(400, 'Missing command_id or node_id')
    @execute_ns.response(404, 'Unknown command or node')
    def post(self):
        """Run a command on a node and wait for the result

        A node that cannot be reached still yields a (failed) execution.
        """
        command_id, node_id = _execute_payload()
        token = CancellationToken(timeout=current_app.config['DISPATCH_DEADLINE_SECONDS'])

        try:
            execution = get_service().execute_command(command_id, node_id, token=token)
        except DispatchError as e:
            logger.warning(f"execution error: {e.message}")
            execution = e.execution

        return execution, 200


@execute_ns.route('/async')
class ExecuteAsync(Resource):
    @execute_ns.doc('execute_command_async')
    @execute_ns.expect(execute_request_model, validate=False)
    @execute_ns.marshal_with(execution_model, code=202)
    @execute_ns.response(202, 'Execution is running; poll /executions/<id>')
    @execute_ns.response(400, 'Missing command_id or node_id')
    @execute_ns.response(404, 'Unknown command or node')
    def post(self):
        """Start a command on a node and return immediately

        The round trip to the node runs on a Celery worker.
        """
        from bastion.tasks.dispatch_tasks import dispatch_execution_task

        command_id, node_id = _execute_payload()
        service = get_service()
        execution, command, node = service.start_execution(command_id, node_id)
        run_request = build_run_request(command)

        try:
            dispatch_execution_task.delay(
                execution.id,
                node.address,
                run_request.script,
                run_request.timeout_seconds
            )
        except Exception as e:
            logger.exception(f"Could not hand execution {execution.id} to Celery")
            execution = service.fail_execution(execution, f"enqueue dispatch: {e}")
            return execution, 202

        logger.info(f"📤 Task sent to Celery for execution {execution.id}")
        # Eager mode has already finished the run
        return service.get_execution(execution.id), 202
