import logging
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from clinic.models import AuditEvent

User = get_user_model()
logger = logging.getLogger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id=None, detail: Optional[Dict[str, Any]]=None) -> Optional[AuditEvent]:
    try:
        return AuditEvent.objects.create(
            user=user if isinstance(user, User) and user.pk else None,
            action=action,
            object_type=object_type,
            object_id=str(object_id) if object_id is not None else None,
            detail=detail or {},
        )
    except Exception:
        # an audit write must never fail the request it describes
        logger.exception("audit write failed for %s", action)
        return None
