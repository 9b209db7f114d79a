import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from errors import AppError, AuthError
from settings import settings
from utils.logging import configure_logging

configure_logging()
logger = logging.getLogger(__name__)


def warn_on_default_secrets(cfg=settings) -> None:
    if cfg.uses_default_jwt_secret():
        logger.warning("JWT_SECRET is not set; signing tokens with the built-in default secret. Set JWT_SECRET before deploying.")


warn_on_default_secrets()

# 1. Setup App
app = FastAPI(
    title="AI Assistant API",
    description="Chat with an AI assistant as a signed-in user or as a guest.",
    version="1.1.0",
)

# 2. Setup CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*", "Authorization"],
)

# 3. Import Models BEFORE create_all to ensure they are registered in Base.metadata
from database import Base, engine
from models import db_models  # CRITICAL: Ensures models are registered
Base.metadata.create_all(bind=engine)

# 4. Map errors to status codes at the request boundary
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Bad Request", "code": "ValidationError", "errors": jsonable_errors(exc)},
    )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Server error", "code": "InternalError"})

def jsonable_errors(exc: RequestValidationError):
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]

# 5. Include Routers
from routers import auth, chat, conversations
app.include_router(auth.router)
app.include_router(chat.router)
app.include_router(conversations.router)

@app.get("/")
def read_root():
    return {"status": "AI Assistant backend is running"}

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "5000")))
