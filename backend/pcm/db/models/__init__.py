# import all models for Alembic
from pcm.db.models.user import User
from pcm.db.models.project import Project
from pcm.db.models.permission import Permission, Role, RolePermission, UserRole
from pcm.db.models.wbs import WBSItem
from pcm.db.models.wbs_change_log import WBSChangeLog
