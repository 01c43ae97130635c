"""Current user endpoint."""

from fastapi import APIRouter, Depends

from agency.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile and role."""

    return {
        "id": str(context.user_id),
        "subject": context.subject,
        "email": context.email,
        "display_name": context.display_name,
        "status": context.status,
        "role": context.role.value,
    }
