"""
WSGI config for SouqMarketplace project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'SouqMarketplace.settings')

application = get_wsgi_application()
