from flask import Flask

from bastion.api import build_api
from bastion.config import DaemonConfig


def create_daemon_app(config_class=DaemonConfig):
    """Agent-side app: one endpoint that runs scripts, plus a health check."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    api = build_api(
        title='Bastion Daemon API',
        description='Runs shell scripts on behalf of the bastion'
    )
    api.init_app(app)

    from bastion.daemon.exec_api import ns as exec_ns
    api.add_namespace(exec_ns, path='/exec')

    @app.route("/healthz")
    def healthz():
        return "ok", 200, {"Content-Type": "text/plain"}

    return app
