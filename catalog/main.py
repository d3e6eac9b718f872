# catalog/main.py
# FastAPI app: product / attribute CRUD plus AI enrichment jobs.
#  - create_app() owns the DB session factory and the AI enricher (app.state)
#  - request validation problems are answered with 400, not FastAPI's 422
#  - unexpected SQLAlchemy errors become a logged 500

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from decouple import config
from sqlalchemy.exc import SQLAlchemyError

from catalog import models  # noqa: F401  (registers tables on Base)
from catalog.database import Base, SessionLocal
from catalog.llm_logic import build_enricher
from catalog.routers import attributes, enrichment, products
from catalog.utils import logger

CORS_ORIGIN = config("CORS_ORIGIN", default="http://localhost:3000")


def _format_validation_errors(errors) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(*, session_factory=None, enricher=None) -> FastAPI:
    app = FastAPI(title="Product Catalog API", version="1.0.0")
    app.state.session_factory = session_factory or SessionLocal
    app.state.enricher = enricher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in CORS_ORIGIN.split(",") if o.strip()],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.on_event("startup")
    def on_startup():
        try:
            bind = app.state.session_factory.kw["bind"]
            Base.metadata.create_all(bind=bind)
            logger.info("Database tables ensured on startup.")
        except SQLAlchemyError as e:
            logger.error(f"DB init failed at startup: {e}")
        if app.state.enricher is None:
            app.state.enricher = build_enricher()

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder({"detail": _format_validation_errors(exc.errors())}),
        )

    @app.exception_handler(SQLAlchemyError)
    async def db_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"DB error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Database error"})

    app.include_router(products.router)
    app.include_router(attributes.router)
    app.include_router(enrichment.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
