from fastapi import APIRouter, Depends

from reimburse.core.config import Settings
from reimburse.core.session import SessionContext
from reimburse.dependencies import (
    get_auth_api,
    get_manager,
    get_notifications,
    get_session_context,
    get_settings,
)
from reimburse.schemas.user import ActorRead, LoginRequest, actor_read
from reimburse.services.notifications import NotificationCenter
from reimburse.services.reimbursement_service import ReimbursementManager
from reimburse.utils.api_client import AuthApi

router = APIRouter()
login_router = APIRouter()


@router.post("/login")
def login(
    credentials: LoginRequest,
    auth_api: AuthApi = Depends(get_auth_api),
    session_context: SessionContext = Depends(get_session_context),
    manager: ReimbursementManager = Depends(get_manager),
    notifications: NotificationCenter = Depends(get_notifications),
):
    token, actor = auth_api.login(credentials.email, credentials.password)
    session_context.establish(token, actor)
    # la lista cargada pertenecía a la sesión anterior
    manager.clear()
    notification = notifications.add("success", f"Welcome, {actor.name}!")
    return {"user": actor_read(actor), "notification": notification}


@router.post("/logout")
def logout(
    auth_api: AuthApi = Depends(get_auth_api),
    session_context: SessionContext = Depends(get_session_context),
    manager: ReimbursementManager = Depends(get_manager),
    notifications: NotificationCenter = Depends(get_notifications),
    settings: Settings = Depends(get_settings),
):
    auth_api.logout(session_context.token)
    session_context.clear()
    manager.clear()
    # los avisos de la sesión anterior no se muestran al siguiente usuario
    notifications.clear()
    notification = notifications.add("info", "You have signed out.")
    return {"redirect": settings.login_path, "notification": notification}


@router.get("/me", response_model=ActorRead)
def me(session_context: SessionContext = Depends(get_session_context)):
    return actor_read(session_context.require())


@login_router.get("/login")
def login_page(session_context: SessionContext = Depends(get_session_context)):
    """Punto de entrada del login; solo informa si ya hay sesión."""
    return {
        "authenticated": session_context.is_authenticated,
        "login_url": "/auth/login",
    }
