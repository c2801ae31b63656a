"""Pytest configuration and fixtures."""

import threading

import pytest
from flask import Flask
from werkzeug.serving import make_server

from bastion import create_app
from bastion.config import Config, DaemonConfig
from bastion.daemon.app import create_daemon_app
from bastion.models.db import db
from bastion.models.entities import RunResult
from bastion.store.memory import memory_stores
from bastion.store.sql import sql_stores


class BastionTestConfig(Config):
    TESTING = True
    STORE_BACKEND = 'memory'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    CELERY_TASK_ALWAYS_EAGER = True
    DAEMON_URL = 'http://daemon.test:9081'
    COMMANDS_FILE = None
    SEED_DEFAULT_COMMANDS = False
    DISPATCH_DEADLINE_SECONDS = 30
    RUNNER_CONNECT_TIMEOUT = 2


class SqlBastionTestConfig(BastionTestConfig):
    STORE_BACKEND = 'sql'


class DaemonTestConfig(DaemonConfig):
    TESTING = True
    # Plain shell: no login profile output in captured stdout
    RUNNER_SHELL = ('bash', '-c')


class FakeRunner:
    """Stands in for RunnerClient; records calls and replays a canned outcome."""

    def __init__(self, result=None, error=None):
        self.result = result or RunResult(stdout="ok\n", stderr="", exit_code=0, duration_ms=5)
        self.error = error
        self.calls = []

    def run(self, address, run_request, token=None):
        self.calls.append((address, run_request, token))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture(params=['memory', 'sql'])
def app(request, runner):
    """Bastion app on both store backends with the fake runner."""
    config = BastionTestConfig if request.param == 'memory' else SqlBastionTestConfig
    app = create_app(config, runner=runner)
    with app.app_context():
        yield app
        if request.param == 'sql':
            db.session.remove()
            db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def service(app):
    return app.extensions['bastion']


@pytest.fixture(params=['memory', 'sql'])
def stores(request):
    """Bare Stores bundle for each backend."""
    if request.param == 'memory':
        yield memory_stores()
        return

    app = Flask(__name__)
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
    db.init_app(app)
    with app.app_context():
        db.create_all()
        yield sql_stores()
        db.session.remove()
        db.drop_all()


@pytest.fixture
def daemon_app():
    return create_daemon_app(DaemonTestConfig)


@pytest.fixture
def daemon_url(daemon_app):
    """A real daemon listening on a free loopback port."""
    server = make_server('127.0.0.1', 0, daemon_app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}"
    server.shutdown()
    thread.join(timeout=5)
