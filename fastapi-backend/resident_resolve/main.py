from fastapi import (
    FastAPI,
    Body,
    Depends,
    HTTPException,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import logging

from . import auth
from .classifier import classifier
from .config import get_settings
from .constants import Role
from .database import async_session_factory, init_db
from .errors import ResidentResolveError
from .models import User
from .observability import (
    get_health_check,
    metrics_response,
    setup_logging,
    setup_metrics_middleware,
)
from .routes import complaints as complaint_routes
from .routes import dashboards as dashboard_routes
from .schemas import (
    LoginRequest,
    ProfileUpdate,
    RegistrationRequest,
    ResidentRegistration,
    SessionResponse,
    UserProfile,
    WorkerRegistration,
    apply_profile_update,
    to_profile,
)
from .seed import seed_demo_users
from .store import USERS, RecordStore, get_store
from .websocket_manager import manager

setup_logging()

logger = logging.getLogger("resident_resolve")

settings = get_settings()

app = FastAPI(title="ResidentResolve API")

setup_metrics_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for dev; restrict in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(complaint_routes.router)
app.include_router(dashboard_routes.router)


@app.exception_handler(ResidentResolveError)
async def domain_error_handler(request: Request, exc: ResidentResolveError):
    logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
async def on_startup():
    await init_db()
    if settings.seed_demo_users:
        async with async_session_factory() as session:
            await seed_demo_users(RecordStore(session))


@app.on_event("shutdown")
async def on_shutdown():
    await classifier.aclose()


@app.get("/health")
def health():
    """Health check endpoint."""
    return get_health_check()


@app.get("/metrics")
def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return metrics_response()


@app.post("/auth/register", response_model=SessionResponse)
async def register(
    payload: RegistrationRequest = Body(..., discriminator="role"),
    store: RecordStore = Depends(get_store),
):
    """Create an account for any role and sign it in."""
    email = payload.email.strip().lower()
    if await store.find_user_by_email(email):
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    user = User(
        name=payload.name,
        email=email,
        role=payload.role,
        password_hash=auth.get_password_hash(payload.password) if payload.password else None,
    )
    if isinstance(payload, ResidentRegistration):
        user.student_id = payload.student_id
        user.room_number = payload.room_number
        user.facility_name = payload.facility_name
    elif isinstance(payload, WorkerRegistration) and payload.profession:
        user.profession = payload.profession.value

    user = await store.upsert(USERS, user)
    logger.info(f"Registered {user.role} account {user.uid}")
    token = await auth.start_session(store, user)
    return SessionResponse(access_token=token, user=to_profile(user))


@app.post("/auth/login", response_model=SessionResponse)
async def login(body: LoginRequest, store: RecordStore = Depends(get_store)):
    user = await store.find_user_by_email(body.email)
    if not user:
        raise HTTPException(status_code=404, detail="Account not found. Please register first")
    if not auth.check_credentials(user, body.password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = await auth.start_session(store, user)
    return SessionResponse(access_token=token, user=to_profile(user))


@app.post("/auth/logout")
async def logout(
    session_id: str = Depends(auth.get_session_id),
    user: User = Depends(auth.get_current_user),
    store: RecordStore = Depends(get_store),
):
    await store.set_active_session(session_id, None)
    logger.info(f"Session ended for user {user.uid}")
    return {"message": "Signed out"}


@app.get("/api/v1/profile/me", response_model=UserProfile)
async def get_profile(user: User = Depends(auth.get_current_user)):
    return to_profile(user)


@app.patch("/api/v1/profile/me", response_model=UserProfile)
async def update_profile(
    body: ProfileUpdate,
    user: User = Depends(auth.get_current_user),
    store: RecordStore = Depends(get_store),
):
    """Edit the caller's own profile; only fields of the caller's role are accepted."""
    apply_profile_update(user, body)
    user = await store.upsert(USERS, user)
    return to_profile(user)


@app.websocket("/ws/dashboard")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(None),
    store: RecordStore = Depends(get_store),
):
    """Push channel for the administrator and worker dashboards."""
    if not token:
        await websocket.close(code=1008)
        return

    try:
        user = await auth.resolve_token(token, store)
    except HTTPException:
        await websocket.close(code=1008)
        return
    finally:
        # Nothing else is read from the store while the socket stays open
        await store.session.close()

    if user.role not in (Role.ADMINISTRATOR.value, Role.WORKER.value):
        await websocket.close(code=1008)
        return

    await manager.connect(websocket, user_id=user.uid, user_role=user.role)
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        manager.disconnect(websocket)
