"""
Main settings file, it is used to find and include all other settings.

Settings are split into ``components`` (shared by every environment) and
``environments`` (picked by the ``DJANGO_ENV`` variable).
"""

from os import environ

import django_stubs_ext
from split_settings.tools import include, optional

# Monkeypatching Django, so stubs will work for all generics,
# e.g. ``admin.ModelAdmin[FileRecord]``
django_stubs_ext.monkeypatch()

# Managing environment via `DJANGO_ENV` variable:
environ.setdefault('DJANGO_ENV', 'development')
_ENV = environ['DJANGO_ENV']

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    # Select the right env:
    'environments/{0}.py'.format(_ENV),
    # Optionally override some settings:
    optional('environments/local.py'),
)

# Include settings:
include(*_base_settings)
