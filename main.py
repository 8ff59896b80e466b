import logging
import os

import asyncpg
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sidebuilds.apis.activity import router as activity_router
from sidebuilds.apis.ai import router as ai_router
from sidebuilds.apis.marketplace import router as marketplace_router
from sidebuilds.apis.metrics import router as metrics_router
from sidebuilds.apis.projects import router as projects_router
from sidebuilds.apis.uploads import router as uploads_router
from sidebuilds.apis.users import router as users_router
from sidebuilds.libs.database import DatabaseConfigError
from sidebuilds.libs.storage_client import StorageError

load_dotenv()

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="SideBuilds API",
        description="Track side projects, keep a build streak and sell projects on the marketplace",
        version="1.0.0",
    )

    origins = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(projects_router, tags=["Projects"])
    app.include_router(metrics_router, tags=["Metrics"])
    app.include_router(activity_router, tags=["Activity"])
    app.include_router(marketplace_router, tags=["Marketplace"])
    app.include_router(users_router, tags=["Users"])
    app.include_router(uploads_router, tags=["Uploads"])
    app.include_router(ai_router, tags=["AI"])

    @app.exception_handler(asyncpg.PostgresError)
    async def database_error_handler(request: Request, exc: asyncpg.PostgresError):
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.exception_handler(DatabaseConfigError)
    async def database_config_handler(request: Request, exc: DatabaseConfigError):
        logger.error(f"Database is not configured: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Database unavailable"})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.environ.get("PORT", "8000")), reload=True)
