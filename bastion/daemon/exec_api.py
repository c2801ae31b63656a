import logging

from flask import current_app, request
from flask_restx import Namespace, Resource, fields

from bastion.cancellation import CancellationToken
from bastion.daemon.disconnect import cancel_on_disconnect
from bastion.daemon.runner import run_script
from bastion.models.entities import RunRequest

logger = logging.getLogger(__name__)

ns = Namespace('exec', description='Run shell scripts on this node')

run_request_model = ns.model('RunRequest', {
    'script': fields.String(required=True, description='Shell script to run'),
    'timeout_seconds': fields.Integer(description='Script deadline; 0 or missing means 300'),
    'working_dir': fields.String(description='Working directory for the script')
})

run_result_model = ns.model('RunResult', {
    'stdout': fields.String(description='Standard output'),
    'stderr': fields.String(description='Standard error'),
    'exit_code': fields.Integer(description='Process exit code'),
    'duration_ms': fields.Integer(description='Wall-clock run time in milliseconds')
})


@ns.route('')
class Exec(Resource):
    @ns.doc('run_script')
    @ns.expect(run_request_model, validate=False)
    @ns.marshal_with(run_result_model)
    @ns.response(400, 'Invalid payload')
    def post(self):
        """Run a script and wait for it to finish

        Script failures (non-zero exit, timeout, spawn errors) are still a
        200 response; the outcome is in exit_code and stderr.
        """
        try:
            run_request = RunRequest.from_dict(request.get_json(silent=True))
        except ValueError as e:
            logger.warning(f"Rejected exec payload: {e}")
            ns.abort(400, 'invalid payload')

        # The dev server exposes the raw socket; other servers skip the watcher
        with cancel_on_disconnect(request.environ.get('werkzeug.socket'), CancellationToken()) as token:
            result = run_script(
                run_request.script,
                working_dir=run_request.working_dir,
                timeout_seconds=run_request.timeout_seconds,
                token=token,
                shell=current_app.config['RUNNER_SHELL'],
            )
        if result.exit_code != 0:
            logger.info(f"exec finished with exit code {result.exit_code}: {result.stderr[:200]}")
        return result, 200
