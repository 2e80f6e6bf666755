"""
WSGI config for the blinkspace project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'blinkspace.settings')

application = get_wsgi_application()
