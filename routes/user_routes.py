import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from models.schemas import SyncResponse
from routes.dependencies import clerk_auth, get_clerk_client, get_user_store
from services.auth_service import AuthContext, ClerkClient
from services.user_service import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("/sync", response_model=SyncResponse)
def sync_user(
    auth: Optional[AuthContext] = Depends(clerk_auth),
    users: UserStore = Depends(get_user_store),
    clerk: ClerkClient = Depends(get_clerk_client),
):
    """
    Create or refresh the internal user row for the signed-in Clerk user.
    Safe to call on every sign-in: the same row is updated each time.
    """
    if auth is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    try:
        email = clerk.get_primary_email(auth.user_id)
        users.upsert(auth.user_id, email)
        logger.info(f"User synced: {auth.user_id}")
        return SyncResponse(success=True)
    except Exception as e:
        logger.error(f"Error syncing user {auth.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
