import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import auth as auth_api
from app.api import comments as comments_api
from app.api import posts as posts_api
from app.api import user as user_api
from app.config import settings
from app.database import create_tables
from app.errors import ConflictError, EntityNotFound, ValidationFailed

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("postboard.api")

app = FastAPI(title="Postboard API")

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
prefix = settings.API_PREFIX.rstrip("/")
app.include_router(posts_api.router, prefix=prefix, tags=["posts"])
app.include_router(comments_api.router, prefix=prefix, tags=["comments"])
app.include_router(user_api.router, prefix=prefix, tags=["users"])
app.include_router(auth_api.router, prefix=f"{prefix}/authorizations", tags=["auth"])


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return JSONResponse(status_code=400, content=exc.errors)


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=400, content=exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        field = str(err["loc"][-1]) if err.get("loc") else "request"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value."))
    return JSONResponse(status_code=400, content=errors)


@app.exception_handler(EntityNotFound)
async def not_found_handler(request: Request, exc: EntityNotFound):
    logger.info("%s %s: %s", request.method, request.url.path, exc)
    return Response(status_code=404)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # 401/403/404 只返回状态码
    if exc.status_code in (401, 403, 404):
        return Response(status_code=exc.status_code, headers=getattr(exc, "headers", None))
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.on_event("startup")
async def startup():
    await create_tables()


@app.get("/")
async def root():
    return {"message": "Postboard API", "version": prefix.lstrip("/") or "v1"}
