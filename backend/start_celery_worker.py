#!/usr/bin/env python3
"""Start a Celery worker for the import queue with suppressed security warnings for containerized environments."""

import sys
import warnings

warnings.filterwarnings('ignore', category=UserWarning, message='.*superuser privileges.*')
warnings.filterwarnings('ignore', category=RuntimeWarning, message='.*superuser privileges.*')

from order_importer.workers.celery_app import IMPORTS_QUEUE, celery_app  # noqa: E402

if __name__ == '__main__':
    # solo pool: one resume step at a time per worker process
    celery_app.worker_main(
        argv=[
            'worker',
            '--loglevel=info',
            f'--queues={IMPORTS_QUEUE}',
            '--pool=solo',
            '--without-mingle',
            '--without-gossip',
        ]
        + sys.argv[1:]
    )
