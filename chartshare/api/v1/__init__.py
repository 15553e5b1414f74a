# API v1 routes
from fastapi import APIRouter

from chartshare.api.v1 import access_requests, admin, share_links, sharing

router = APIRouter()

router.include_router(sharing.router, prefix="/charts", tags=["sharing"])
router.include_router(access_requests.router, tags=["access-requests"])
router.include_router(share_links.router, tags=["share-links"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
