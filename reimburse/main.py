import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.middleware.cors import CORSMiddleware

from reimburse.api.endpoints import auth
from reimburse.api.endpoints import reimbursements
from reimburse.core.errors import AuthError, DashboardError
from reimburse.dependencies import get_notifications, settings
from reimburse.services.notifications import NotificationCenter

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Reimbursement dashboard")
app.state.notifications = NotificationCenter()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DashboardError)
def dashboard_error_handler(request: Request, exc: DashboardError):
    """Todo error de una acción termina en un aviso para el usuario."""
    notification = request.app.state.notifications.add(exc.notification_type, exc.message)
    if isinstance(exc, AuthError):
        # sesión ausente o caducada: al login, sin reintentos
        return RedirectResponse(settings.login_path, status_code=303)
    logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    content = {"notification": jsonable_encoder(notification)}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(auth.login_router, tags=["auth"])
app.include_router(reimbursements.router, prefix="/reembolsos", tags=["reembolsos"])


@app.get("/notifications")
def list_notifications(request: Request):
    return get_notifications(request).list()


@app.delete("/notifications/{notification_id}", status_code=204)
def dismiss_notification(notification_id: str, request: Request):
    get_notifications(request).dismiss(notification_id)


@app.get("/health")
def health():
    return {"status": "ok", "service": "reimburse"}
