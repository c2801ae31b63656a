import logging

from flask import current_app

from bastion.cancellation import CancellationToken
from bastion.celery_app import celery
from bastion.errors import DispatchError
from bastion.extensions import get_service
from bastion.models.entities import RunRequest

logger = logging.getLogger(__name__)


# Single attempt: no autoretry, a failed dispatch stays failed
@celery.task(name='dispatch_execution_task', bind=True, max_retries=0)
def dispatch_execution_task(self, execution_id, address, script, timeout_seconds):
    """Remote half of a dispatch whose RUNNING record already exists.

    The script travels with the task so deleting the command meanwhile
    does not abort the run.
    """
    service = get_service()
    execution = service.get_execution(execution_id)

    if not execution:
        logger.error(f"Execution {execution_id} not found")
        return {'error': 'Execution not found'}

    if execution.status.is_terminal:
        logger.warning(f"Execution {execution_id} already {execution.status.value}, not dispatching again")
        return {'execution_id': execution_id, 'status': execution.status.value}

    token = CancellationToken(timeout=current_app.config['DISPATCH_DEADLINE_SECONDS'])
    run_request = RunRequest(script=script, timeout_seconds=timeout_seconds)

    try:
        execution = service.complete_execution(execution, address, run_request, token=token)
    except DispatchError as e:
        execution = e.execution

    return {
        'execution_id': execution.id,
        'status': execution.status.value
    }
