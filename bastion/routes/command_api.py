from flask_restx import Namespace, Resource, fields

from bastion.errors import ValidationError
from bastion.extensions import get_service

# Create namespace
ns = Namespace('commands', description='Command operations')

# Define models for Swagger documentation
command_create_model = ns.model('CommandCreate', {
    'name': fields.String(required=True, description='Command name'),
    'description': fields.String(required=False, default='', description='What the command does'),
    'script': fields.String(required=True, description='Shell script to run'),
    'timeout_seconds': fields.Integer(required=False, description='Script timeout; 0 or missing means 300')
})

command_model = ns.model('Command', {
    'id': fields.String(description='Command ID'),
    'name': fields.String(description='Command name'),
    'description': fields.String(description='What the command does'),
    'script': fields.String(description='Shell script'),
    'timeout_seconds': fields.Integer(description='Script timeout in seconds'),
    'created_at': fields.DateTime(dt_format='iso8601', description='Creation timestamp')
})

error_model = ns.model('Error', {
    'message': fields.String(description='Error message')
})


def _timeout_from(data):
    timeout = data.get('timeout_seconds')
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int)):
        raise ValidationError('timeout_seconds must be an integer')
    return timeout


@ns.route('')
class CommandList(Resource):
    @ns.doc('list_commands')
    @ns.marshal_list_with(command_model)
    def get(self):
        """List commands, newest first"""
        return get_service().list_commands(), 200

    @ns.doc('create_command')
    @ns.expect(command_create_model, validate=False)
    @ns.marshal_with(command_model, code=201)
    @ns.response(201, 'Command created successfully')
    @ns.response(400, 'Invalid request data', error_model)
    def post(self):
        """Create a new command

        Example payload:
        {
            "name": "Disk usage",
            "description": "df -h on the node",
            "script": "df -h",
            "timeout_seconds": 60
        }
        """
        data = ns.payload or {}
        if not isinstance(data, dict):
            raise ValidationError('payload must be a JSON object')

        command = get_service().create_command(
            name=data.get('name'),
            description=data.get('description') or '',
            script=data.get('script'),
            timeout_seconds=_timeout_from(data),
        )
        return command, 201


@ns.route('/<string:command_id>')
@ns.param('command_id', 'The command identifier')
class CommandDetail(Resource):
    @ns.doc('get_command')
    @ns.marshal_with(command_model)
    @ns.response(404, 'Command not found', error_model)
    def get(self, command_id):
        """Get command details"""
        command = get_service().get_command(command_id)

        if command is None:
            ns.abort(404, f"unknown command {command_id}")

        return command, 200

    @ns.doc('delete_command')
    @ns.response(204, 'Command deleted')
    @ns.response(404, 'Command not found', error_model)
    def delete(self, command_id):
        """Delete a command; its past executions are kept"""
        get_service().delete_command(command_id)
        return '', 204
