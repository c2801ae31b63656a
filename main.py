import logging

from bastion import create_app
from bastion.config import Config

logging.basicConfig(level=Config.LOG_LEVEL)

app = create_app()

if __name__ == "__main__":
    # threaded: every dispatch blocks its own request thread
    app.run(
        host=app.config['BASTION_HOST'],
        port=app.config['BASTION_PORT'],
        debug=app.config['DEBUG'],
        threaded=True
    )
