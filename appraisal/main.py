from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from appraisal.api.assignments import router as assignments_router
from appraisal.api.audit import router as audit_router
from appraisal.api.cycles import router as cycles_router
from appraisal.api.disputes import router as disputes_router
from appraisal.api.employees import router as employees_router
from appraisal.api.health import router as health_router
from appraisal.api.me import router as me_router
from appraisal.api.records import router as records_router
from appraisal.api.reports import router as reports_router
from appraisal.api.root import router as root_router
from appraisal.api.templates import router as templates_router
from appraisal.core.config import settings
from appraisal.core.errors import register_exception_handlers
from appraisal.core.logging import setup_logging

setup_logging(settings.LOG_LEVEL, structured=settings.LOG_JSON)

app = FastAPI(title="Performance Appraisal Engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(root_router)
app.include_router(health_router)
app.include_router(me_router)
app.include_router(templates_router)
app.include_router(cycles_router)
app.include_router(assignments_router)
app.include_router(records_router)
app.include_router(disputes_router)
app.include_router(reports_router)
app.include_router(employees_router)
app.include_router(audit_router)
