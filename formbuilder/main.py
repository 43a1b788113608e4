import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formbuilder.api.audit import router as audit_router
from formbuilder.api.forms import router as forms_router
from formbuilder.api.health import router as health_router
from formbuilder.api.public import router as public_router
from formbuilder.api.root import router as root_router
from formbuilder.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Form Builder")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(root_router)
app.include_router(health_router)
app.include_router(forms_router)
app.include_router(public_router)
app.include_router(audit_router)
