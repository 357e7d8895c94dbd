"""Current user endpoint."""

from fastapi import APIRouter, Depends

from solar_crm.core.auth import RequestUserContext, get_current_user_context, visibility_scope_for
from solar_crm.services.dashboard_composer import ROLE_WIDGETS

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile, role and dashboard widgets."""

    return {
        "id": str(context.user_id),
        "email": context.email,
        "name": context.name,
        "role": context.role.value,
        "scope": visibility_scope_for(context).label,
        "dashboard": context.role.value.lower(),
        "widgets": [widget.value for widget in ROLE_WIDGETS[context.role]],
    }
