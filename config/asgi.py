"""
ASGI config for the Razpored project.

Exposes ``application`` for ASGI servers, e.g.:
    uvicorn config.asgi:application --host 0.0.0.0 --port 8000

Open grids sync by HTTP polling, so no WebSocket routing is needed here.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.production")

application = get_asgi_application()
