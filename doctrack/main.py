from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from doctrack.api.departments import router as departments_router
from doctrack.api.documents import router as documents_router
from doctrack.api.people import router as people_router
from doctrack.api.sessions import router as sessions_router
from doctrack.errors import register_error_handlers
from doctrack.logging import configure_logging

app = FastAPI(title="DocTrack API")

configure_logging()
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(departments_router)
_include_api_router(people_router)
_include_api_router(documents_router)
_include_api_router(sessions_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
