import logging

from django.core.files.storage import default_storage
from django.db import DatabaseError, connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def _database_ok() -> bool:
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except DatabaseError as e:
        logger.error("healthz: database check failed: %s", e)
        return False
    return bool(row and row[0] == 1)


def _storage_ok() -> bool:
    try:
        default_storage.listdir('')
    except FileNotFoundError:
        # nothing uploaded yet
        return True
    except OSError as e:
        logger.error("healthz: storage check failed: %s", e)
        return False
    return True


def healthz(request):
    """Liveness probe covering the database and document storage."""
    checks = {'db': _database_ok(), 'storage': _storage_ok()}
    ok = all(checks.values())
    return JsonResponse({'ok': ok, **checks}, status=200 if ok else 503)
