from pathlib import Path
from typing import Literal
from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from pcm.core.config import settings
from pcm.core.deps import get_wbs_engine, require_permission
from pcm.core.errors import ChangeLogError
from pcm.core.logging import logger
from pcm.crud.permissions import WBS_CREATE, WBS_READ, WBS_WRITE
from pcm.db.models.user import User
from pcm.schemas.wbs import WBSChangeLogOut, WBSCreate, WBSItemOut, WBSNodeOut
from pcm.services.exports.wbs import default_export_path, export_wbs_json, export_wbs_pdf, export_wbs_xlsx
from pcm.services.wbs.engine import WBSEngine

router = APIRouter()

CHANGE_LOG_HEADER = "X-Change-Log"


def flag_change_log_failure(response: Response, e: ChangeLogError) -> None:
    logger.error("wbs_change_log_partial_success", item_id=e.item_id, change_type=e.change_type)
    response.headers[CHANGE_LOG_HEADER] = "failed"


def _discard(path: Path) -> BackgroundTask:
    # export files only live until the response body has been sent
    return BackgroundTask(path.unlink, missing_ok=True)


@router.get("/{project_id}/wbs", response_model=list[WBSNodeOut])
def get_wbs_tree(
    project_id: int,
    engine: WBSEngine = Depends(get_wbs_engine),
    _user=Depends(require_permission(WBS_READ)),
):
    return engine.tree(project_id)


@router.get("/{project_id}/wbs/flat", response_model=list[WBSItemOut])
def get_wbs_flat(
    project_id: int,
    engine: WBSEngine = Depends(get_wbs_engine),
    _user=Depends(require_permission(WBS_READ)),
):
    return engine.list_by_project(project_id)


@router.post("/{project_id}/wbs", response_model=WBSItemOut, status_code=201)
def post_wbs_item(
    project_id: int,
    data: WBSCreate,
    response: Response,
    engine: WBSEngine = Depends(get_wbs_engine),
    user: User = Depends(require_permission(WBS_CREATE, WBS_WRITE)),
):
    try:
        return engine.create(project_id, data, user.id)
    except ChangeLogError as e:
        flag_change_log_failure(response, e)
        return e.result


@router.get("/{project_id}/wbs/changes", response_model=list[WBSChangeLogOut])
def get_wbs_project_changes(
    project_id: int,
    limit: int | None = Query(None, ge=1, le=1000),
    engine: WBSEngine = Depends(get_wbs_engine),
    _user=Depends(require_permission(WBS_READ)),
):
    return engine.project_history(project_id, limit or settings.WBS_CHANGES_DEFAULT_LIMIT)


@router.get("/{project_id}/wbs/export")
def export_wbs(
    project_id: int,
    format: Literal["json", "xlsx", "pdf"] = Query("json"),
    include_description: bool = Query(False),
    include_ids: bool = Query(False),
    engine: WBSEngine = Depends(get_wbs_engine),
    _user=Depends(require_permission(WBS_READ)),
):
    tree = engine.tree(project_id)
    prefix = f"wbs_{project_id}"
    if format == "json":
        return Response(
            content=export_wbs_json(tree, include_description, include_ids),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{prefix}.json"'},
        )
    if format == "xlsx":
        out = default_export_path(prefix, "xlsx")
        export_wbs_xlsx(tree, out, include_description, include_ids)
        return FileResponse(
            str(out),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=out.name,
            background=_discard(out),
        )
    out = default_export_path(prefix, "pdf")
    export_wbs_pdf(tree, out, include_description=include_description, include_ids=include_ids)
    return FileResponse(str(out), media_type="application/pdf", filename=out.name, background=_discard(out))
