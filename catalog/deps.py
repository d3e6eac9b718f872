# catalog/deps.py
# FastAPI dependencies: both handles live on app.state and are owned by the app factory.

from fastapi import HTTPException, Request


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_enricher(request: Request):
    enricher = getattr(request.app.state, "enricher", None)
    if enricher is None:
        raise HTTPException(status_code=500, detail="AI enrichment is not configured")
    return enricher
