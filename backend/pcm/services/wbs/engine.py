"""WBS hierarchy engine.

Owns the node lifecycle of a project's work-breakdown forest: level numbers,
sibling ordering and the change-log trail. Every mutation follows the same
path: validate, read current state, mutate, commit, then append one change-log
entry in a separate transaction.
"""
from contextlib import contextmanager
from typing import Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pcm.core.errors import (
    ChangeLogError,
    ConflictError,
    NotFoundError,
    PCMError,
    StoreError,
    ValidationError,
)
from pcm.core.logging import logger
from pcm.crud import projects as projects_crud
from pcm.crud import wbs as wbs_crud
from pcm.crud import wbs_change_log as change_log_crud
from pcm.db.models.wbs import WBSItem
from pcm.db.models.wbs_change_log import WBSChangeLog
from pcm.schemas.wbs import WBSCreate, WBSItemOut, WBSNodeOut, WBSReorder, WBSUpdate
from pcm.services.wbs.hierarchy import build_hierarchy

CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"
REORDER = "REORDER"

ChangeLogSink = Callable[..., object]


def snapshot(item: WBSItem) -> dict:
    return WBSItemOut.model_validate(item).model_dump(mode="json")


def position(item: WBSItem) -> dict:
    return {"parent_id": item.parent_id, "sort_order": item.sort_order, "level_number": item.level_number}


def _clean(value: str | None, field: str) -> str:
    v = (value or "").strip()
    if not v:
        raise ValidationError(f"{field} is required", code="VALIDATION_MISSING_FIELD")
    return v


class WBSEngine:
    def __init__(self, db: Session, change_log: ChangeLogSink = change_log_crud.log_change):
        self.db = db
        self.change_log = change_log

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def list_by_project(self, project_id: int) -> list[WBSItem]:
        with self._reading("list_by_project"):
            return wbs_crud.list_by_project(self.db, project_id)

    def get(self, item_id: int) -> WBSItem:
        with self._reading("get"):
            item = wbs_crud.get_item(self.db, item_id)
        if item is None:
            raise NotFoundError("WBS item not found", code="ITEM_NOT_FOUND")
        return item

    @staticmethod
    def build_hierarchy(items: Iterable[WBSItem]) -> list[WBSNodeOut]:
        return build_hierarchy(items)

    def tree(self, project_id: int) -> list[WBSNodeOut]:
        return build_hierarchy(self.list_by_project(project_id))

    def history(self, item_id: int, limit: int | None = None) -> list[WBSChangeLog]:
        with self._reading("history"):
            return change_log_crud.list_by_item(self.db, item_id, limit)

    def project_history(self, project_id: int, limit: int | None = None) -> list[WBSChangeLog]:
        with self._reading("project_history"):
            return change_log_crud.list_by_project(self.db, project_id, limit)

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------
    def create(self, project_id: int, data: WBSCreate, user_id: int) -> WBSItem:
        code = _clean(data.code, "code")
        name = _clean(data.name, "name")

        with self._transaction("create"):
            if projects_crud.get_project(self.db, project_id) is None:
                raise NotFoundError(f"Project {project_id} not found", code="PROJECT_NOT_FOUND")

            level = 1
            if data.parent_id is not None:
                parent = wbs_crud.get_item(self.db, data.parent_id)
                if parent is None or parent.project_id != project_id:
                    raise NotFoundError("Parent WBS item not found", code="PARENT_NOT_FOUND")
                level = parent.level_number + 1

            item = WBSItem(
                project_id=project_id,
                parent_id=data.parent_id,
                code=code,
                name=name,
                description=data.description,
                level_number=level,
                sort_order=wbs_crud.next_sort_order(self.db, project_id, data.parent_id),
            )
            wbs_crud.add_item(self.db, item)
        self.db.refresh(item)

        logger.info("wbs_item_created", item_id=item.id, project_id=project_id, level=item.level_number)
        self._log(item, user_id, CREATE, None, snapshot(item), data.change_reason, result=item)
        return item

    def update(self, item_id: int, data: WBSUpdate, user_id: int) -> WBSItem:
        with self._transaction("update"):
            item = self.get(item_id)
            before = snapshot(item)
            if "code" in data.model_fields_set:
                item.code = _clean(data.code, "code")
            if "name" in data.model_fields_set:
                item.name = _clean(data.name, "name")
            if "description" in data.model_fields_set:
                item.description = data.description
        self.db.refresh(item)

        logger.info("wbs_item_updated", item_id=item.id)
        self._log(item, user_id, UPDATE, before, snapshot(item), data.change_reason, result=item)
        return item

    def delete(self, item_id: int, user_id: int, change_reason: str | None = None) -> bool:
        with self._transaction("delete"):
            item = self.get(item_id)
            children = wbs_crud.count_children(self.db, item_id)
            if children > 0:
                raise ConflictError("Cannot delete WBS item with children", code="ITEM_HAS_CHILDREN")

            before = snapshot(item)
            project_id, parent_id, sort_order = item.project_id, item.parent_id, item.sort_order
            for sib in wbs_crud.list_siblings(self.db, project_id, parent_id):
                if sib.id != item_id and sib.sort_order > sort_order:
                    sib.sort_order -= 1
            self.db.flush()

            if wbs_crud.delete_item(self.db, item_id) != 1:
                raise StoreError("Failed to delete WBS item", code="DELETE_FAILED")

        logger.info("wbs_item_deleted", item_id=item_id, project_id=project_id)
        self._log_raw(item_id, project_id, user_id, DELETE, before, None, change_reason, result=True)
        return True

    def reorder(self, item_id: int, data: WBSReorder, user_id: int) -> WBSItem:
        with self._transaction("reorder"):
            item = self.get(item_id)
            before = position(item)

            # whole project in one read; parent/child lookups below are in memory
            by_id = {i.id: i for i in wbs_crud.list_by_project(self.db, item.project_id)}
            children: dict[int | None, list[WBSItem]] = {}
            for i in by_id.values():
                children.setdefault(i.parent_id, []).append(i)

            if "new_parent_id" in data.model_fields_set:
                target_parent_id = data.new_parent_id
            else:
                target_parent_id = item.parent_id

            if target_parent_id is None:
                new_level = 1
            else:
                parent = by_id.get(target_parent_id)
                if parent is None:
                    raise NotFoundError("Parent WBS item not found", code="PARENT_NOT_FOUND")
                self._check_not_descendant(item, parent, by_id)
                new_level = parent.level_number + 1

            old_sort = item.sort_order
            new_sort = data.new_sort_order
            if target_parent_id == item.parent_id:
                for sib in children.get(item.parent_id, []):
                    if sib.id == item.id:
                        continue
                    if new_sort < old_sort and new_sort <= sib.sort_order < old_sort:
                        sib.sort_order += 1
                    elif new_sort > old_sort and old_sort < sib.sort_order <= new_sort:
                        sib.sort_order -= 1
            else:
                for sib in children.get(item.parent_id, []):
                    if sib.id != item.id and sib.sort_order > old_sort:
                        sib.sort_order -= 1
                for sib in children.get(target_parent_id, []):
                    if sib.sort_order >= new_sort:
                        sib.sort_order += 1

            item.parent_id = target_parent_id
            item.sort_order = new_sort
            item.level_number = new_level
            moved = self._cascade_levels(item, children)
        self.db.refresh(item)

        logger.info(
            "wbs_item_reordered",
            item_id=item.id,
            parent_id=item.parent_id,
            sort_order=item.sort_order,
            descendants_relevelled=moved,
        )
        self._log(item, user_id, REORDER, before, position(item), data.change_reason, result=item)
        return item

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    @staticmethod
    def _check_not_descendant(item: WBSItem, new_parent: WBSItem, by_id: dict[int, WBSItem]) -> None:
        seen: set[int] = set()
        cur: WBSItem | None = new_parent
        while cur is not None and cur.id not in seen:
            if cur.id == item.id:
                raise ValidationError(
                    "A WBS item cannot be moved under itself or its descendants", code="WBS_CYCLE"
                )
            seen.add(cur.id)
            cur = by_id.get(cur.parent_id) if cur.parent_id is not None else None

    @staticmethod
    def _cascade_levels(item: WBSItem, children: dict[int | None, list[WBSItem]]) -> int:
        """Recompute level_number below ``item``; returns how many rows changed."""
        changed = 0
        stack = [item]
        while stack:
            node = stack.pop()
            for child in children.get(node.id, []):
                level = node.level_number + 1
                if child.level_number != level:
                    child.level_number = level
                    changed += 1
                stack.append(child)
        return changed

    @contextmanager
    def _reading(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            logger.exception("store_error", action=action, error=str(e))
            raise StoreError() from e

    @contextmanager
    def _transaction(self, action: str):
        try:
            yield
            self.db.commit()
        except PCMError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("store_error", action=action, error=str(e))
            raise StoreError() from e

    def _log(self, item: WBSItem, user_id: int, change_type: str, before, after, reason, *, result):
        self._log_raw(item.id, item.project_id, user_id, change_type, before, after, reason, result=result)

    def _log_raw(self, item_id, project_id, user_id, change_type, before, after, reason, *, result):
        try:
            self.change_log(
                self.db,
                item_id=item_id,
                project_id=project_id,
                user_id=user_id,
                change_type=change_type,
                before=before,
                after=after,
                reason=reason,
            )
        except Exception as e:
            self.db.rollback()
            logger.exception("wbs_change_log_failed", item_id=item_id, change_type=change_type, error=str(e))
            raise ChangeLogError(
                "Change applied but the change log could not be written",
                result=result,
                item_id=item_id,
                change_type=change_type,
            ) from e
