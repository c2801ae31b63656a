import redis
from flask import Blueprint, current_app, jsonify

bp = Blueprint('health', __name__)


@bp.route('/healthz')
def healthz():
    return "ok", 200, {"Content-Type": "text/plain"}


@bp.route('/health/redis')
def check_redis():
    """Check the Celery broker used for background dispatch"""
    try:
        redis_client = redis.from_url(current_app.config['CELERY_BROKER_URL'])

        # Test connection
        redis_client.ping()

        info = redis_client.info()

        return jsonify({
            "status": "connected",
            "redis_version": info.get('redis_version'),
            "connected_clients": info.get('connected_clients'),
            "used_memory_human": info.get('used_memory_human'),
            "uptime_in_seconds": info.get('uptime_in_seconds')
        }), 200

    except redis.RedisError as e:
        return jsonify({
            "status": "disconnected",
            "error": str(e),
            "message": "Cannot connect to Redis"
        }), 503


@bp.route('/health/celery')
def check_celery():
    """Check Celery worker status"""
    try:
        from bastion.celery_app import celery

        inspect = celery.control.inspect(timeout=1.0)
        active_workers = inspect.active()

        if active_workers:
            return jsonify({
                "status": "running",
                "workers": list(active_workers.keys())
            }), 200
        else:
            return jsonify({
                "status": "no_workers",
                "message": "No Celery workers are running"
            }), 503

    except Exception as e:
        return jsonify({
            "status": "error",
            "error": str(e),
            "message": "Cannot connect to Celery"
        }), 500
