"""
This file contains all the settings that defines the development server.

SECURITY WARNING: don't run with debug turned on in production!
"""

from server.settings.components import config

DEBUG = True

ALLOWED_HOSTS = config(
    'DJANGO_ALLOWED_HOSTS',
    cast=lambda hosts: [host.strip() for host in hosts.split(',')],
    default='localhost,127.0.0.1,[::1],testserver',
)
