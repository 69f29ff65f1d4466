from functools import lru_cache

from services.ai_service import AIService
from services.auth_service import ClerkAuth, ClerkClient
from services.contact_service import ContactStore
from services.user_service import UserStore

# Yields None for unverifiable requests; resolve_user reports that as UserUnauthenticated
clerk_auth = ClerkAuth(auto_error=False)


@lru_cache(maxsize=1)
def get_user_store() -> UserStore:
    return UserStore()


@lru_cache(maxsize=1)
def get_contact_store() -> ContactStore:
    return ContactStore()


@lru_cache(maxsize=1)
def get_clerk_client() -> ClerkClient:
    return ClerkClient()


@lru_cache(maxsize=1)
def get_ai_service() -> AIService:
    return AIService(contact_store=get_contact_store())
