from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from license_panel.api.models import HealthResponse
from license_panel.api.routes import backup, licenses, users, wipe
from license_panel.config import get_settings
from license_panel.core.exceptions import EXCEPTION_HANDLERS
from license_panel.core.lifespan import lifespan
from license_panel.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

__version__ = "0.1.0"

settings = get_settings()

app = FastAPI(title="License Panel", version=__version__, lifespan=lifespan, docs_url="/docs" if settings.debug else None, redoc_url=None)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"])

# Add exception handlers
for exc_class, handler in EXCEPTION_HANDLERS.items():
  app.add_exception_handler(exc_class, handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/api/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
  """Report liveness and whether a seller credential is loaded."""
  return HealthResponse(status="ok", connected=getattr(request.app.state, "upstream_client", None) is not None)


app.include_router(licenses.router, prefix="/api", tags=["licenses"])
app.include_router(users.router, prefix="/api", tags=["users"])
app.include_router(wipe.router, prefix="/api", tags=["wipe"])
app.include_router(backup.router, prefix="/api", tags=["backup"])
