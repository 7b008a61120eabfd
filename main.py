import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
import database
from admin import router as admin_router
from auth import router as auth_router
from contact import router as contact_router
from recipes import router as recipes_router
from reviews import router as reviews_router
from users import router as users_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.connect()
    try:
        yield
    finally:
        database.close()


def create_app() -> FastAPI:
    app = FastAPI(title="Recipe Box API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Server error."},
        )

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/users", tags=["users"])
    app.include_router(recipes_router, prefix="/api/recipes", tags=["recipes"])
    app.include_router(reviews_router, prefix="/api/reviews", tags=["reviews"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
    app.include_router(contact_router, prefix="/api/contact", tags=["contact"])

    @app.get("/")
    def root():
        return {"message": "Recipe Box API running"}

    @app.get("/test")
    def test_database():
        db = database.db
        try:
            collections = db.list_collection_names() if db is not None else []
            return {
                "backend": "ok",
                "database": "ok" if db is not None else "missing",
                "collections": collections,
            }
        except Exception as e:
            return {"backend": "ok", "database": f"error: {e}"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
