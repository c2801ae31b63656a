import logging

from bastion.config import DaemonConfig
from bastion.daemon.app import create_daemon_app

logging.basicConfig(level=DaemonConfig.LOG_LEVEL)

app = create_daemon_app()

if __name__ == "__main__":
    app.run(
        host=app.config['DAEMON_HOST'],
        port=app.config['DAEMON_PORT'],
        debug=app.config['DEBUG'],
        threaded=True
    )
