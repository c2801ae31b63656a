import logging

from bastion import create_app
from bastion.celery_app import celery
from bastion.config import Config

logging.basicConfig(level=Config.LOG_LEVEL)

# Create Flask app context
app = create_app()
app.app_context().push()

if app.config['STORE_BACKEND'] != 'sql':
    logging.getLogger(__name__).warning(
        "STORE_BACKEND is not 'sql'; the worker cannot see executions created by the API"
    )

# Import tasks to register them with Celery
from bastion.tasks import dispatch_tasks
