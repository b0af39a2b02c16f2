from fastapi import APIRouter

from clubevents.api.v1.admin_users import router as admin_users_router
from clubevents.api.v1.auth import router as auth_router
from clubevents.api.v1.events import router as events_router
from clubevents.api.v1.functions import router as functions_router
from clubevents.api.v1.me import router as me_router
from clubevents.api.v1.profiles import router as profiles_router
from clubevents.api.v1.registrations import router as registrations_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(me_router)
router.include_router(profiles_router)
router.include_router(events_router)
router.include_router(registrations_router)
router.include_router(functions_router)
router.include_router(admin_users_router)
