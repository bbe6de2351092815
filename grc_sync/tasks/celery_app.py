# ==============================================
# grc_sync/tasks/celery_app.py
# ==============================================
from datetime import timedelta

from celery import Celery
from kombu import Queue

from grc_sync.core.config import settings

broker_url = settings.celery_settings.broker_url or settings.redis_settings.build_url()

# Create Celery instance
celery_app = Celery(
    "grc_sync_worker",
    broker=broker_url,
    backend=settings.celery_settings.result_backend or broker_url,
    include=[
        'grc_sync.tasks.sync_tasks',
    ]
)

# Celery configuration
celery_app.conf.update(
    # Task routing and queues
    task_routes={
        'sync.*': {'queue': 'sync'},
    },

    task_queues=(
        Queue('sync', routing_key='sync', priority=1),
        Queue('default', routing_key='default', priority=4),
    ),
    task_default_queue='default',

    # Task execution settings
    task_serializer=settings.celery_settings.task_serializer,
    accept_content=settings.celery_settings.accept_content,
    result_serializer=settings.celery_settings.result_serializer,
    timezone=settings.celery_settings.timezone,
    enable_utc=settings.celery_settings.enable_utc,

    # Task result settings
    result_expires=timedelta(days=1),

    # Task execution limits
    task_time_limit=600,
    task_soft_time_limit=540,
    worker_max_tasks_per_child=1000,

    # Worker settings
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Monitoring and logging
    worker_send_task_events=True,
    task_send_sent_event=True,
    worker_hijack_root_logger=False,

    broker_connection_retry_on_startup=True,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Deliver pending sync events of the configured organizations
        'process-pending-sync-events': {
            'task': 'sync.process_pending_events',
            'schedule': timedelta(seconds=settings.sync.beat_interval_seconds),
            'options': {'queue': 'sync'}
        },
    },
    beat_schedule_filename='celerybeat-schedule',
)
