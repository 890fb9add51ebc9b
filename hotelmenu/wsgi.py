"""
WSGI config for hotelmenu.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hotelmenu.settings')

application = get_wsgi_application()
