from fastapi import APIRouter, Request
from pydantic import BaseModel

from nexus.core.audit import create_audit_log
from nexus.core.deps import CurrentUser, DbSession
from nexus.core.validators import StrongPassword
from nexus.services.users import change_password as change_user_password

router = APIRouter(prefix="/users", tags=["users"])


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: StrongPassword

    class Config:
        extra = "forbid"


@router.post("/change-password")
def change_password(data: ChangePasswordRequest, request: Request, user: CurrentUser, db: DbSession):
    change_user_password(db, user, data.current_password, data.new_password)

    create_audit_log(
        db=db,
        action="auth.password_change",
        resource_type="user",
        resource_id=user.id,
        actor_user_id=user.id,
        request=request,
    )

    return {"message": "Password changed successfully."}
