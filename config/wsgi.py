"""
WSGI config for the Razpored project.

Exposes ``application`` for WSGI servers, e.g.:
    gunicorn config.wsgi:application --bind 0.0.0.0:8000 --workers 3
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.production")

application = get_wsgi_application()
