from fastapi import APIRouter
from pcm.api.routers import auth, projects, wbs, wbs_items, admin

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(wbs.router, prefix="/projects", tags=["wbs"])
api_router.include_router(wbs_items.router, prefix="/wbs/items", tags=["wbs"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
