"""
FastAPI wrapper for the SEO Content Assistant.

This module exposes the editing-session workflow as a REST API so a
browser editor can drive it: one WorkflowController per (site, post)
being edited, created on first use and dropped when the editor closes.
"""

import dataclasses
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seo_content_assistant import __version__
from seo_content_assistant.config import WorkflowConfig
from seo_content_assistant.controller import WorkflowController
from seo_content_assistant.oracle_client import OracleClient
from seo_content_assistant.panel_view import build_panel_view

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close every editing session and oracle client on shutdown."""
    yield
    for controller in _sessions.values():
        controller.close()
    _sessions.clear()
    for oracle in _oracles.values():
        await oracle.aclose()
    _oracles.clear()
    logger.info("Closed editing sessions and oracle clients")


app = FastAPI(
    title="SEO Content Assistant API",
    description="SERP benchmarking, live content scoring and AI fixes for drafts being edited",
    version=__version__,
    lifespan=lifespan,
)

# Enable CORS for all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class DocumentUpdate(BaseModel):
    """Partial document update. Omitted fields are left unchanged."""
    content_html: Optional[str] = Field(None, description="Draft body HTML")
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    primary_keyword: Optional[str] = None
    secondary_keywords: Optional[list[str]] = Field(None, description="Secondary keyword phrases")


class AnalysisRequest(BaseModel):
    """Run analysis options; blank values fall back to the configured defaults."""
    location: Optional[str] = Field(None, description="Search location, e.g. 'United States'")
    language: Optional[str] = Field(None, description="Search language code, e.g. 'en'")


class SessionResponse(BaseModel):
    """Current state of one editing session."""
    post_id: str
    state: str
    analysis_id: Optional[str] = None
    content_html: str
    meta_title: str
    meta_description: str
    primary_keyword: str
    secondary_keywords: list[str] = Field(default_factory=list)
    total: Optional[float] = None
    suggestions: Optional[dict] = None
    can_undo: bool = False
    is_analyzing: bool = False
    is_scoring: bool = False
    is_suggesting: bool = False
    is_applying: bool = False
    last_error: Optional[str] = None
    panel: dict = Field(default_factory=dict)


class CommandResponse(BaseModel):
    """Result of a workflow command."""
    success: bool
    message: str
    session: SessionResponse


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


# ============================================================================
# Session registry
# ============================================================================

_oracles: dict[Optional[str], OracleClient] = {}
_sessions: dict[tuple[Optional[str], str], WorkflowController] = {}


def get_oracle(x_site_id: Optional[str] = Header(None)) -> OracleClient:
    """One oracle client per site, so each carries its own X-Site-Id header."""
    if x_site_id not in _oracles:
        _oracles[x_site_id] = OracleClient(WorkflowConfig.from_env(site_id=x_site_id))
    return _oracles[x_site_id]


def get_controller(
    post_id: str,
    x_site_id: Optional[str] = Header(None),
    oracle: OracleClient = Depends(get_oracle),
) -> WorkflowController:
    """Get (or start) the editing session for a post."""
    key = (x_site_id, post_id)
    if key not in _sessions:
        config = WorkflowConfig.from_env(site_id=x_site_id, post_id=post_id)
        _sessions[key] = WorkflowController(oracle, config)
        logger.info(f"Started editing session for post {post_id} (site={x_site_id})")
    return _sessions[key]


def _session_response(post_id: str, controller: WorkflowController) -> SessionResponse:
    document = controller.document
    breakdown = controller.breakdown
    suggestions = controller.suggestions
    return SessionResponse(
        post_id=post_id,
        state=controller.state.value,
        analysis_id=controller.session.id if controller.session else None,
        content_html=document.content_html,
        meta_title=document.meta_title,
        meta_description=document.meta_description,
        primary_keyword=document.primary_keyword,
        secondary_keywords=list(document.secondary_keywords),
        total=breakdown.total if breakdown else None,
        suggestions=dataclasses.asdict(suggestions) if suggestions else None,
        can_undo=controller.can_undo,
        is_analyzing=controller.is_analyzing,
        is_scoring=controller.is_scoring,
        is_suggesting=controller.is_suggesting,
        is_applying=controller.is_applying,
        last_error=controller.last_error,
        panel=dataclasses.asdict(build_panel_view(controller)),
    )


def _command_response(
    post_id: str,
    controller: WorkflowController,
    success: bool,
    done_message: str,
) -> CommandResponse:
    message = done_message if success else (controller.last_error or "Nothing to do")
    return CommandResponse(
        success=success,
        message=message,
        session=_session_response(post_id, controller),
    )


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@app.get("/api/sessions/{post_id}", response_model=SessionResponse)
async def get_session(post_id: str, controller: WorkflowController = Depends(get_controller)):
    """Current session state and panel view."""
    return _session_response(post_id, controller)


@app.put("/api/sessions/{post_id}/document", response_model=SessionResponse)
async def update_document(
    post_id: str,
    update: DocumentUpdate,
    controller: WorkflowController = Depends(get_controller),
):
    """Apply editor changes; observed changes schedule a debounced rescore."""
    changes = update.model_dump(exclude_none=True)
    if changes:
        controller.update_document(**changes)
    return _session_response(post_id, controller)


@app.post("/api/sessions/{post_id}/analysis", response_model=CommandResponse)
async def run_analysis(
    post_id: str,
    request: Optional[AnalysisRequest] = None,
    controller: WorkflowController = Depends(get_controller),
):
    """Benchmark the primary keyword and score the draft."""
    request = request or AnalysisRequest()
    session = await controller.run_analysis(request.location, request.language)
    return _command_response(post_id, controller, session is not None, "Analysis complete")


@app.post("/api/sessions/{post_id}/rescore", response_model=CommandResponse)
async def rescore(post_id: str, controller: WorkflowController = Depends(get_controller)):
    """Score the current draft immediately."""
    breakdown = await controller.rescore()
    return _command_response(post_id, controller, breakdown is not None, "Draft scored")


@app.post("/api/sessions/{post_id}/suggestions", response_model=CommandResponse)
async def request_suggestions(
    post_id: str,
    controller: WorkflowController = Depends(get_controller),
):
    """Fetch AI fixes without applying them."""
    bundle = await controller.request_suggestions()
    return _command_response(post_id, controller, bundle is not None, "Suggestions ready")


@app.post("/api/sessions/{post_id}/fixes", response_model=CommandResponse)
async def apply_fixes(post_id: str, controller: WorkflowController = Depends(get_controller)):
    """Fetch AI fixes and apply them to the draft."""
    applied = await controller.apply_fixes()
    return _command_response(post_id, controller, applied, "AI fixes applied")


@app.post("/api/sessions/{post_id}/undo", response_model=CommandResponse)
async def undo(post_id: str, controller: WorkflowController = Depends(get_controller)):
    """Revert the last applied AI fix."""
    restored = controller.undo()
    return _command_response(post_id, controller, restored, "AI fixes reverted")


@app.delete("/api/sessions/{post_id}")
async def close_session(post_id: str, x_site_id: Optional[str] = Header(None)):
    """Drop the editing session for a post."""
    controller = _sessions.pop((x_site_id, post_id), None)
    if controller is None:
        raise HTTPException(status_code=404, detail="No active session for this post")
    controller.close()
    return {"success": True, "message": "Session closed"}
