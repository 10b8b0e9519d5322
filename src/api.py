"""
HTTP API - REST endpoints for remote sites, plugin detection and sync.

Provides a FastAPI app served by uvicorn. Sync and detection run inside
the request; the response carries the final result.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from config import APIConfig
from db import DuplicateSiteError
from detector import SiteUnreachableError
from orchestrator import CredentialsRequiredError, SiteNotFoundError
from reconciler import SyncMode
from status import SyncInProgressError
from wordpress import WordPressError, WordPressHTTPError

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)
MAX_NAME_LENGTH = 255


# Site models


class SiteCreate(BaseModel):
    """Request model for registering a remote site."""

    name: str = Field(..., description="Display name", example="Main blog")
    url: str = Field(
        ..., description="Site URL without /wp-json", example="https://blog.example.com"
    )
    username: str = Field(..., description="WordPress username")
    credential_ref: Optional[str] = Field(
        None, description="Reference to the stored application password"
    )

    @field_validator("name", "username")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"cannot exceed {MAX_NAME_LENGTH} characters")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not URL_PATTERN.match(v):
            raise ValueError("url must be an absolute http(s) URL")
        return v


class SiteResponse(BaseModel):
    """Response model for a remote site."""

    id: int
    name: str
    base_url: str
    username: str
    translation_plugin: str = "NONE"
    plugin_version: Optional[str] = None
    plugin_settings: Dict[str, Any] = {}
    supported_languages: List[str] = []
    sync_status: str = "idle"
    last_sync_error: Optional[str] = None
    total_found: int = 0
    total_synced: int = 0
    sync_started_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CredentialsRequest(BaseModel):
    """Request body carrying the site's application password."""

    app_password: Optional[str] = Field(
        None, description="WordPress application password"
    )


class SyncRequest(CredentialsRequest):
    """Request body for a sync run."""

    mode: str = Field("incremental", description="'full' or 'incremental'")
    languages: List[str] = Field(
        default_factory=list,
        description="Raw language tags to sync (default: detected languages)",
    )
    owner_id: Optional[int] = Field(None, description="Owner of created articles")

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        valid = [m.value for m in SyncMode]
        if v not in valid:
            raise ValueError(f"mode must be one of {valid}")
        return v


def error_status(error: Exception) -> int:
    """Map a domain error to an HTTP status code."""
    if isinstance(error, SiteNotFoundError):
        return 404
    if isinstance(error, CredentialsRequiredError):
        return 400
    if isinstance(error, (SyncInProgressError, DuplicateSiteError)):
        return 409
    if isinstance(error, (SiteUnreachableError, WordPressError)):
        return 502
    return 500


class HTTPAPI:
    """REST API over the database and the sync orchestrator."""

    def __init__(self, config: Optional[APIConfig] = None):
        self.config = config or APIConfig()
        self.app: Optional[FastAPI] = None
        self.server = None
        self._db_manager = None
        self._orchestrator = None

    def initialize(self) -> FastAPI:
        """Create the FastAPI app and register routes."""
        self.app = FastAPI(
            title="WordPress Translation Sync API",
            description="Detect translation plugins and sync WordPress content",
            version="1.0.0",
        )
        if self.config.cors_enabled:
            self.app.add_middleware(
                CORSMiddleware,
                allow_origins=self.config.cors_origins,
                allow_methods=["*"],
                allow_headers=["*"],
            )
        self._setup_routes()
        logger.info(f"HTTP API initialized on {self.config.host}:{self.config.port}")
        return self.app

    def set_db_manager(self, db_manager) -> None:
        """Set the database manager instance."""
        self._db_manager = db_manager

    def set_orchestrator(self, orchestrator) -> None:
        """Set the sync orchestrator instance."""
        self._orchestrator = orchestrator

    def _require_db(self):
        if not self._db_manager:
            raise HTTPException(status_code=503, detail="Database not available")
        return self._db_manager

    def _require_orchestrator(self):
        if not self._orchestrator:
            raise HTTPException(status_code=503, detail="Sync service not available")
        return self._orchestrator

    def _setup_routes(self) -> None:
        """
        Set up all FastAPI routes.

        Configures the following endpoint groups:
        - Health check: GET /
        - Sites CRUD: /api/v1/sites
        - Connection test: POST /api/v1/sites/{id}/test
        - Plugin detection: POST /api/v1/sites/{id}/detect-plugin
        - Sync: POST /api/v1/sites/{id}/sync

        Raises:
            RuntimeError: If the FastAPI app has not been initialized
        """
        if not self.app:
            raise RuntimeError("App not initialized")

        @self.app.get("/")
        async def health_check():
            """Health check endpoint."""
            return {"status": "ok", "service": "wp-translation-sync"}

        # ==================== Site Endpoints ====================

        @self.app.post("/api/v1/sites", response_model=SiteResponse, status_code=201)
        async def create_site(site: SiteCreate):
            """Register a remote WordPress site."""
            db = self._require_db()
            try:
                site_id = await db.create_site(
                    name=site.name,
                    base_url=site.url,
                    username=site.username,
                    credential_ref=site.credential_ref,
                )
            except DuplicateSiteError as e:
                raise HTTPException(status_code=409, detail=e.message)
            created = await db.get_site(site_id)
            return SiteResponse(**created)

        @self.app.get("/api/v1/sites", response_model=List[SiteResponse])
        async def list_sites(sync_status: Optional[str] = None, limit: int = 100):
            """List remote sites."""
            db = self._require_db()
            sites = await db.list_sites(sync_status=sync_status, limit=limit)
            return [SiteResponse(**s) for s in sites]

        @self.app.get("/api/v1/sites/{site_id}", response_model=SiteResponse)
        async def get_site(site_id: int):
            """Get a remote site by ID."""
            db = self._require_db()
            site = await db.get_site(site_id)
            if not site:
                raise HTTPException(status_code=404, detail="WordPress site not found")
            return SiteResponse(**site)

        @self.app.delete("/api/v1/sites/{site_id}", status_code=204)
        async def delete_site(site_id: int):
            """Remove a remote site."""
            db = self._require_db()
            if not await db.delete_site(site_id):
                raise HTTPException(status_code=404, detail="WordPress site not found")

        # ==================== Remote Operations ====================

        @self.app.post("/api/v1/sites/{site_id}/test")
        async def test_connection(site_id: int, body: CredentialsRequest):
            """Check the site's credentials against the WordPress REST API."""
            orchestrator = self._require_orchestrator()
            try:
                data = await orchestrator.test_connection(site_id, body.app_password)
            except (SiteNotFoundError, CredentialsRequiredError) as e:
                raise HTTPException(status_code=error_status(e), detail=e.message)
            except WordPressHTTPError as e:
                if e.status in (401, 403):
                    raise HTTPException(
                        status_code=400,
                        detail="Authentication failed. Check username and password.",
                    )
                raise HTTPException(status_code=502, detail=e.message)
            except WordPressError as e:
                raise HTTPException(status_code=502, detail=e.message)
            return {"success": True, "data": data}

        @self.app.post("/api/v1/sites/{site_id}/detect-plugin")
        async def detect_plugin(site_id: int, body: CredentialsRequest):
            """Detect and record the site's translation plugin."""
            orchestrator = self._require_orchestrator()
            try:
                info = await orchestrator.detect_plugin(site_id, body.app_password)
            except (
                SiteNotFoundError,
                CredentialsRequiredError,
                SiteUnreachableError,
            ) as e:
                raise HTTPException(status_code=error_status(e), detail=e.message)
            return {"success": True, "data": info.to_dict()}

        @self.app.post("/api/v1/sites/{site_id}/sync")
        async def sync_site(site_id: int, body: SyncRequest):
            """Sync the site's posts into the local store."""
            orchestrator = self._require_orchestrator()
            try:
                result = await orchestrator.sync_site(
                    site_id,
                    body.app_password,
                    mode=body.mode,
                    languages=body.languages,
                    owner_id=body.owner_id,
                )
            except (
                SiteNotFoundError,
                CredentialsRequiredError,
                SyncInProgressError,
            ) as e:
                raise HTTPException(status_code=error_status(e), detail=e.message)
            return {"success": True, "data": result.to_dict()}

    async def start(self) -> None:
        """Start the HTTP server."""
        if not self.app:
            self.initialize()

        config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
        )
        self.server = uvicorn.Server(config)

        logger.info(f"Starting HTTP API on {self.config.host}:{self.config.port}")
        await self.server.serve()

    async def stop(self) -> None:
        """Stop the HTTP server gracefully."""
        logger.info("Stopping HTTP API")
        if self.server:
            self.server.should_exit = True
