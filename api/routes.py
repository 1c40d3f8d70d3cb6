"""
API Routes - All endpoint definitions for Signal Watcher

Endpoints organized by:
- Health Check
- Signals (paginated records, latest report, highlight)
- Users (registration, watch lists, repost, agent settings)
- Cycle (manual trigger, status)
- Consensus (reports from peer replicas)
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from loguru import logger
from pydantic import BaseModel, Field

from config import settings
from constants import DEFAULT_AGENT_INTERVAL, LOWEST_PRIORITY_TIER
from processor import TriggerCycle, Repost
from utils.errors import InvalidCursorError, MergeError

router = APIRouter()

PEER_REPORT_KEY = "consensus/peer_report"


# ============================================================
# Request bodies
# ============================================================
class WatchPageRequest(BaseModel):
    cursor: Optional[str] = None
    watchlist: Optional[List[str]] = None
    page_size: Optional[int] = Field(default=None, ge=1, le=1000)


class AddWatchRequest(BaseModel):
    identity: str = Field(min_length=1)
    tier: int = Field(default=LOWEST_PRIORITY_TIER, ge=1, le=3)
    tags: List[str] = Field(default_factory=list)


class RepostRequest(BaseModel):
    text: str = Field(min_length=1)


class AgentConfigRequest(BaseModel):
    enabled: bool
    interval: str = DEFAULT_AGENT_INTERVAL
    imitate: str = ""


# ============================================================
# Health Check
# ============================================================
@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "database": str(settings.DATABASE_PATH),
    }


# ============================================================
# Signals
# ============================================================
@router.post("/watch")
async def watch_page(request: Request, body: Optional[WatchPageRequest] = None):
    """
    One page of merged signal records in key order.

    Pass the returned nextCursor back to continue; it is null once every
    key has been returned.
    """
    body = body or WatchPageRequest()
    try:
        page = await request.app.state.reader.get_page(
            cursor=body.cursor,
            page_size=body.page_size,
            watchlist=body.watchlist,
        )
    except InvalidCursorError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return page.to_dict()


@router.get("/report")
async def latest_report(request: Request):
    """Records touched by the latest cycle."""
    try:
        report = await request.app.state.reader.get_latest_report()
    except MergeError as e:
        logger.warning(f"[API] Unreadable report: {e}")
        report = None
    return report or {"records": []}


@router.get("/alpha")
async def latest_highlight(request: Request):
    """The latest cycle highlight, or null."""
    highlight = await request.app.state.reader.get_highlight()
    return highlight.to_dict() if highlight else None


# ============================================================
# Users
# ============================================================
@router.post("/users/{user_id}")
async def register_user(request: Request, user_id: str):
    profile = await request.app.state.registry.register_user(user_id)
    return profile.to_dict()


@router.get("/users/{user_id}/watchlist")
async def list_watches(request: Request, user_id: str):
    registry = request.app.state.registry
    profile = await registry.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {
        "userId": user_id,
        "watchList": [source.to_dict() for source in profile.watch_list],
    }


@router.post("/users/{user_id}/watchlist")
async def add_watch(request: Request, user_id: str, body: AddWatchRequest):
    try:
        added = await request.app.state.registry.add_watch(
            user_id, body.identity, tier=body.tier, tags=body.tags
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"added": added}


@router.delete("/users/{user_id}/watchlist/{identity}")
async def remove_watch(request: Request, user_id: str, identity: str):
    removed = await request.app.state.registry.remove_watch(user_id, identity)
    if not removed:
        raise HTTPException(status_code=404, detail="Identity not watched")
    return {"removed": True}


@router.get("/users/{user_id}/watchlist/{identity}")
async def is_watched(request: Request, user_id: str, identity: str):
    watched = await request.app.state.registry.is_watched(user_id, identity)
    return {"isWatched": watched}


@router.post("/users/{user_id}/repost", status_code=202)
async def repost(request: Request, user_id: str, body: RepostRequest):
    """Queue a post on behalf of the user; the daily limit is checked when it runs."""
    request.app.state.commands.submit(Repost(user_id=user_id, text=body.text))
    return {"queued": True}


@router.put("/users/{user_id}/agent")
async def set_agent(request: Request, user_id: str, body: AgentConfigRequest):
    try:
        agent = await request.app.state.registry.set_agent_config(
            user_id, body.enabled, interval=body.interval, imitate=body.imitate
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return agent.to_dict()


# ============================================================
# Cycle
# ============================================================
@router.post("/cycle/run", status_code=202)
async def run_cycle(request: Request):
    """Queue a cycle; it is skipped if the last one started less than the delay ago."""
    request.app.state.commands.submit(TriggerCycle())
    return {"queued": True}


@router.get("/cycle/status")
async def cycle_status(request: Request):
    return await request.app.state.scheduler.status()


# ============================================================
# Consensus
# ============================================================
@router.post("/consensus/report")
async def receive_peer_report(request: Request):
    """Store the latest report broadcast by a peer replica."""
    try:
        report = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Body must be JSON")
    await request.app.state.store.set(PEER_REPORT_KEY, report)
    logger.info(f"[API] Received peer report {report.get('run_id') if isinstance(report, dict) else ''}")
    return {"accepted": True}
