from fastapi import APIRouter

from formbuilder.core.serialization import FORMAT_VERSION

router = APIRouter()

@router.get("/")
def root():
    return {
        "name": "Form Builder Backend",
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "format_version": FORMAT_VERSION,
    }
