from fastapi import APIRouter, Depends, Query, Response

from pcm.core.config import settings
from pcm.core.deps import get_wbs_engine, require_item_permission
from pcm.core.errors import ChangeLogError
from pcm.crud.permissions import WBS_DELETE, WBS_READ, WBS_UPDATE
from pcm.db.models.user import User
from pcm.schemas.wbs import WBSChangeLogOut, WBSDelete, WBSDeleteOut, WBSItemOut, WBSReorder, WBSUpdate
from pcm.services.wbs.engine import WBSEngine
from pcm.api.routers.wbs import flag_change_log_failure

router = APIRouter()


@router.get("/{item_id}", response_model=WBSItemOut)
def get_wbs_item(
    item_id: int,
    engine: WBSEngine = Depends(get_wbs_engine),
    _user=Depends(require_item_permission(WBS_READ)),
):
    return engine.get(item_id)


@router.put("/{item_id}", response_model=WBSItemOut)
def put_wbs_item(
    item_id: int,
    data: WBSUpdate,
    response: Response,
    engine: WBSEngine = Depends(get_wbs_engine),
    user: User = Depends(require_item_permission(WBS_UPDATE)),
):
    try:
        return engine.update(item_id, data, user.id)
    except ChangeLogError as e:
        flag_change_log_failure(response, e)
        return e.result


@router.delete("/{item_id}", response_model=WBSDeleteOut)
def delete_wbs_item(
    item_id: int,
    data: WBSDelete,
    response: Response,
    engine: WBSEngine = Depends(get_wbs_engine),
    user: User = Depends(require_item_permission(WBS_DELETE)),
):
    try:
        engine.delete(item_id, user.id, data.change_reason)
    except ChangeLogError as e:
        flag_change_log_failure(response, e)
    return WBSDeleteOut(success=True)


@router.post("/{item_id}/reorder", response_model=WBSItemOut)
def reorder_wbs_item(
    item_id: int,
    data: WBSReorder,
    response: Response,
    engine: WBSEngine = Depends(get_wbs_engine),
    user: User = Depends(require_item_permission(WBS_UPDATE)),
):
    try:
        return engine.reorder(item_id, data, user.id)
    except ChangeLogError as e:
        flag_change_log_failure(response, e)
        return e.result


@router.get("/{item_id}/changes", response_model=list[WBSChangeLogOut])
def get_wbs_item_changes(
    item_id: int,
    limit: int | None = Query(None, ge=1, le=1000),
    engine: WBSEngine = Depends(get_wbs_engine),
    _user=Depends(require_item_permission(WBS_READ)),
):
    return engine.history(item_id, limit or settings.WBS_CHANGES_DEFAULT_LIMIT)
