import logging

from flask import Flask, jsonify, request

from bastion.api import build_api
from bastion.config import Config
from bastion.models.db import db
from bastion.celery_app import init_celery
from bastion.errors import NotFoundError, ValidationError
from bastion.extensions import EXTENSION_KEY
from bastion.services.dispatch_service import DispatchService
from bastion.services.runner_client import RunnerClient
from bastion.store.backends import build_stores

logger = logging.getLogger(__name__)

LOCAL_NODE_ID = "node-local"

DEFAULT_COMMANDS = [
    {
        "name": "Check GPU",
        "description": "Print GPU info with nvidia-smi",
        "script": "nvidia-smi || echo 'nvidia-smi not available'",
        "timeout_seconds": 60,
    },
    {
        "name": "Docker ps",
        "description": "List running containers",
        "script": "docker ps",
        "timeout_seconds": 60,
    },
]


def _bootstrap(service, config):
    service.register_node(name="Local Daemon", address=config['DAEMON_URL'], node_id=LOCAL_NODE_ID)

    commands_file = config.get('COMMANDS_FILE')
    if commands_file:
        from bastion.services.command_loader import CommandFileError, import_commands
        try:
            import_commands(service, commands_file)
        except CommandFileError as e:
            logger.error(f"failed to load commands from {commands_file}: {e.message}")

    if config.get('SEED_DEFAULT_COMMANDS') and not service.list_commands():
        for command in DEFAULT_COMMANDS:
            service.create_command(**command)


def _register_error_handlers(api):
    @api.errorhandler(ValidationError)
    def handle_validation_error(error):
        return {'message': error.message}, 400

    @api.errorhandler(NotFoundError)
    def handle_not_found(error):
        return {'message': error.message}, 404


def create_app(config_class=Config, runner=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    init_celery(app)

    backend = app.config['STORE_BACKEND']
    with app.app_context():
        from bastion.models import command_model, execution_model
        if backend == 'sql':
            db.create_all()

    runner = runner or RunnerClient(connect_timeout=app.config['RUNNER_CONNECT_TIMEOUT'])
    service = DispatchService(build_stores(backend), runner=runner)
    app.extensions[EXTENSION_KEY] = service

    with app.app_context():
        _bootstrap(service, app.config)
    logger.info(f"Bastion ready ({backend} store, local node at {app.config['DAEMON_URL']})")

    # Initialize API with Swagger
    api = build_api(
        title='Bastion API',
        description='Register commands and nodes, dispatch commands, inspect executions'
    )
    api.init_app(app)
    _register_error_handlers(api)

    # Register API namespaces
    from bastion.routes.command_api import ns as command_ns
    from bastion.routes.node_api import ns as node_ns
    from bastion.routes.execution_api import ns as execution_ns, execute_ns
    api.add_namespace(command_ns, path='/commands')
    api.add_namespace(node_ns, path='/nodes')
    api.add_namespace(execution_ns, path='/executions')
    api.add_namespace(execute_ns, path='/execute')

    from bastion.routes import health_routes
    app.register_blueprint(health_routes.bp)

    @app.before_request
    def preflight():
        if request.method == 'OPTIONS':
            return '', 204

    @app.after_request
    def cors(response):
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        response.headers['Access-Control-Allow-Methods'] = 'GET,POST,DELETE,OPTIONS'
        return response

    @app.route("/")
    def home():
        return jsonify({
            "message": "Bastion API is running!",
            "status": "success",
            "documentation": "/docs"
        })

    return app
