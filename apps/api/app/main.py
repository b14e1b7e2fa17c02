import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import WorksheetError
from app.core.logging_config import setup_logging
from app.routers.auth import router as auth_router
from app.routers.realtime import router as realtime_router
from app.routers.reports import router as reports_router
from app.routers.worksheets import router as worksheets_router

setup_logging(level=settings.log_level, json_output=settings.log_format == "json")
logger = logging.getLogger(__name__)

app = FastAPI(title="Worksheet API")

# Comma-separated list, e.g.:
# CORS_ORIGINS="http://localhost:3000,https://dashboard.example.com"
allow_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

# Safe fallback for local dev if env var not set
if not allow_origins:
  allow_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
  ]

app.add_middleware(
  CORSMiddleware,
  allow_origins=allow_origins,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)


@app.exception_handler(WorksheetError)
def handle_worksheet_error(request: Request, exc: WorksheetError):
  if exc.status_code >= 500:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
  else:
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
  return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(auth_router, prefix="/auth", tags=["auth"])
# Before the worksheets router so /worksheets/reports/* is not read as a worksheet id
app.include_router(reports_router, prefix="/worksheets/reports", tags=["reports"])
app.include_router(worksheets_router, prefix="/worksheets", tags=["worksheets"])
app.include_router(realtime_router, tags=["realtime"])

@app.get("/health")
def health():
  return {"status": "ok"}
