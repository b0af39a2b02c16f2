from fastapi import APIRouter
from pydantic import BaseModel

from clubevents.auth.deps import CurrentUser

router = APIRouter(prefix="/me", tags=["me"])


class MeOut(BaseModel):
    user_id: str
    email: str | None
    display_name: str | None
    role: str


@router.get("", response_model=MeOut)
def me(user: CurrentUser):
    return MeOut(
        user_id=user.user_id,
        email=user.email,
        display_name=user.display_name,
        role=user.role.value,
    )
