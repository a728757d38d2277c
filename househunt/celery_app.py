"""Celery application configuration."""

from celery import Celery

from househunt.config import get_settings

settings = get_settings()

app = Celery(
    "househunt",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["househunt.tasks.push"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=120,  # push fan-out should never take long
    task_soft_time_limit=90,
    task_ignore_result=True,
)
