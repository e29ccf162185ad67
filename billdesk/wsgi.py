"""WSGI entry point; settings import runs the environment checks."""

import os
import sys
import logging

logger = logging.getLogger(__name__)

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "billdesk.settings")

try:
    from django.core.wsgi import get_wsgi_application
    application = get_wsgi_application()
except Exception as e:
    logger.critical(f"Failed to start BillDesk WSGI application: {e}")
    sys.exit(1)
