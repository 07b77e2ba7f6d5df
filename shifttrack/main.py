import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import Base, engine
from .logging import setup_logging, RequestIdMiddleware
from .services.errors import ShiftTrackError
from .routes.shifts import router as shifts_router
from .routes.manager import router as manager_router
from .routes.users import router as users_router


async def shifttrack_error_handler(request: Request, exc: ShiftTrackError):
    structlog.get_logger().info(
        "request_failed",
        path=request.url.path,
        code=exc.code,
        status=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_exception_handler(ShiftTrackError, shifttrack_error_handler)

    # Routers
    app.include_router(users_router)
    app.include_router(shifts_router)
    app.include_router(manager_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok", "environment": settings.environment}

    if settings.auto_create_db:
        Base.metadata.create_all(bind=engine)

    return app


app = create_app()
