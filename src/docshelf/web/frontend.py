"""Static HTML frontend for the docshelf web UI."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

TEMPLATE_PATH = Path(__file__).parent / "templates" / "index.html"


def _load_template() -> str:
    return TEMPLATE_PATH.read_text(encoding="utf-8")


@router.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    return HTMLResponse(content=_load_template())
