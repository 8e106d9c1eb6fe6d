from fastapi import Request

from reimburse.core.config import Settings
from reimburse.core.session import SessionContext, SessionStore
from reimburse.services.list_projection import ListViewState
from reimburse.services.notifications import NotificationCenter
from reimburse.services.reimbursement_service import ReimbursementManager
from reimburse.utils.api_client import AuthApi, ReimbursementApi

settings = Settings()
session_context = SessionContext(SessionStore(settings.session_file))
manager = ReimbursementManager(ReimbursementApi(settings, session_context), session_context)
auth_api = AuthApi(settings)
list_state = ListViewState(settings.page_size)


def get_settings() -> Settings:
    return settings


def get_session_context() -> SessionContext:
    return session_context


def get_manager() -> ReimbursementManager:
    return manager


def get_auth_api() -> AuthApi:
    return auth_api


def get_list_state() -> ListViewState:
    return list_state


def get_notifications(request: Request) -> NotificationCenter:
    return request.app.state.notifications
