from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging

from config.database import close_pool, create_tables, test_connection
from config.settings import get_settings
from routes.ai_routes import router as ai_router
from routes.contact_routes import router as contact_router
from routes.user_routes import router as user_router
from utils.helpers import format_validation_errors

logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger("wishday")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events"""
    logger.info("Starting Wishday backend...")
    if test_connection():
        logger.info("Successfully connected to database")
    else:
        logger.error("Database connection failed")

    yield

    close_pool()
    logger.info("Shutting down Wishday backend...")


app = FastAPI(
    title="Wishday Backend",
    description="Birthday tracking API with an AI assistant",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"errors": format_validation_errors(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(user_router)
app.include_router(contact_router)
app.include_router(ai_router)


@app.get("/")
async def root():
    return {"message": "Wishday backend is running!"}


@app.get("/health")
def health():
    db_status = test_connection()
    return {
        "status": "healthy" if db_status else "unhealthy",
        "database": "connected" if db_status else "disconnected"
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the Wishday backend")
    parser.add_argument("--init-db", action="store_true", help="create the database tables and exit")
    parser.add_argument("--reload", action="store_true", help="reload on code changes")
    args = parser.parse_args()

    if args.init_db:
        create_tables()
    else:
        uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=args.reload)
