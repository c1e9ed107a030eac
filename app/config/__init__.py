"""
Guincoin project configuration (settings, URLs, WSGI/ASGI, Celery).

The Celery app is imported here so that @shared_task functions in
coins.tasks bind to it whenever Django starts.
"""

from config.celery import app as celery_app

__all__ = ("celery_app",)
