from sqlalchemy import func
from sqlalchemy.orm import Session

from pcm.db.models.wbs import WBSItem


def _sibling_filter(q, project_id: int, parent_id: int | None):
    q = q.filter(WBSItem.project_id == project_id)
    if parent_id is None:
        return q.filter(WBSItem.parent_id.is_(None))
    return q.filter(WBSItem.parent_id == parent_id)


def list_by_project(db: Session, project_id: int) -> list[WBSItem]:
    return (
        db.query(WBSItem)
        .filter(WBSItem.project_id == project_id)
        .order_by(WBSItem.sort_order, WBSItem.id)
        .all()
    )


def get_item(db: Session, item_id: int) -> WBSItem | None:
    return db.query(WBSItem).filter(WBSItem.id == item_id).one_or_none()


def count_children(db: Session, item_id: int) -> int:
    return db.query(func.count(WBSItem.id)).filter(WBSItem.parent_id == item_id).scalar() or 0


def next_sort_order(db: Session, project_id: int, parent_id: int | None) -> int:
    """One past the highest sort_order in the sibling group; 0 for an empty group."""
    q = db.query(func.coalesce(func.max(WBSItem.sort_order), -1) + 1)
    return _sibling_filter(q, project_id, parent_id).scalar()


def list_siblings(db: Session, project_id: int, parent_id: int | None) -> list[WBSItem]:
    return _sibling_filter(db.query(WBSItem), project_id, parent_id).order_by(WBSItem.sort_order, WBSItem.id).all()


def add_item(db: Session, item: WBSItem) -> WBSItem:
    db.add(item)
    db.flush()
    return item


def delete_item(db: Session, item_id: int) -> int:
    """Delete one row; returns the affected row count reported by the store."""
    return db.query(WBSItem).filter(WBSItem.id == item_id).delete(synchronize_session="fetch")
