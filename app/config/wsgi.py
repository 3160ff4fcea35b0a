"""
WSGI config for the chat backend.

The project is served over ASGI (config.asgi) so that WebSocket connections
work. WSGI only serves HTTP and is kept for management tooling and
traditional deployments of the REST API.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
