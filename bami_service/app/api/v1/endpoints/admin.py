# API Router for the admin dashboard
from fastapi import APIRouter, Depends, HTTPException
import logging
import secrets

from bami_service.app.config import settings
from bami_service.app.dependencies.auth import require_admin_token, require_api_key
from bami_service.app.dependencies.services import get_case_service
from bami_service.app.models import AdminLoginRequest
from bami_service.app.service.analytics import build_analytics, list_case_items
from bami_service.app.service.cases import CaseService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", dependencies=[Depends(require_api_key)], tags=["Admin"])


@router.post("/login")
async def admin_login(request_data: AdminLoginRequest):
    email_ok = secrets.compare_digest(request_data.email.encode(), settings.ADMIN_EMAIL.encode())
    password_ok = secrets.compare_digest(request_data.password.encode(), settings.ADMIN_PASSWORD.encode())
    if email_ok and password_ok:
        logger.info("Admin login succeeded.")
        return {"token": settings.ADMIN_TOKEN}
    logger.warning("Admin login failed: invalid credentials.")
    raise HTTPException(status_code=401, detail="Invalid credentials")


@router.get("/analytics", dependencies=[Depends(require_admin_token)])
async def admin_analytics(case_service: CaseService = Depends(get_case_service)):
    return build_analytics(case_service.list_cases())


@router.get("/cases", dependencies=[Depends(require_admin_token)])
async def admin_cases(case_service: CaseService = Depends(get_case_service)):
    return {"items": list_case_items(case_service.list_cases())}
