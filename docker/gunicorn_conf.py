# Gunicorn configuration for the odoo-backup status API
# Serve with: gunicorn -c docker/gunicorn_conf.py "odoo_backup:create_app()"

import os
import logging

logger = logging.getLogger('gunicorn.error')

bind = os.environ.get('GUNICORN_BIND', '127.0.0.1:8000')
workers = int(os.environ.get('GUNICORN_WORKERS', 2))


def post_fork(server, worker):
    """
    Called in each worker process before the app is loaded.

    Designates the first spawned worker (worker.age == 1) as the scheduler owner so
    only one process runs the backup cycle.

    Args:
        worker: Gunicorn worker instance (age counts spawned workers from 1)
    """
    if worker.age == 1:
        os.environ['SCHEDULER_WORKER'] = 'true'
        logger.info(f"Worker PID {worker.pid} (age={worker.age}): Designated as SCHEDULER OWNER")
    else:
        os.environ['SCHEDULER_WORKER'] = 'false'
        logger.info(f"Worker PID {worker.pid} (age={worker.age}): Standard HTTP worker (scheduler disabled)")
