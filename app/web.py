from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from dashboard.views import DashboardSettings, derive_view, format_time_ago
from datastore.bins import BinStore, build_default_bin_store


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.filters["time_ago"] = format_time_ago


def get_store() -> BinStore:
    return build_default_bin_store()


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    threshold: int = Query(85, ge=0, le=100),
    store: BinStore = Depends(get_store),
) -> HTMLResponse:
    settings = DashboardSettings(alert_threshold=threshold)
    view = derive_view(store.list_all(), settings)
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "view": view,
            "settings": settings,
        },
    )
