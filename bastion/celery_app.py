from celery import Celery
from flask import has_app_context

celery = Celery('bastion')


def init_celery(app):
    """Initialize Celery with Flask app context"""
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
        task_serializer='json',
        result_serializer='json',
        accept_content=['json'],
        timezone='UTC',
        enable_utc=True,
        task_always_eager=app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
        imports=['bastion.tasks.dispatch_tasks'],  # Auto-discover tasks
    )

    class ContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            # Eager tasks already run inside the request's app context
            if has_app_context():
                return self.run(*args, **kwargs)
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    return celery
