import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "transcode_scheduler.settings")

celery_app = Celery("transcode_scheduler")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.autodiscover_tasks()
