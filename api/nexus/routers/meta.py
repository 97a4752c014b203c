from fastapi import APIRouter

from nexus.core.deps import CurrentUser
from nexus.services.meta import get_meta

router = APIRouter(prefix="/meta", tags=["meta"])


@router.get("")
def read_meta(user: CurrentUser):
    """Roles, card statuses, card priorities and board visibilities as {label, value}."""
    return get_meta()
