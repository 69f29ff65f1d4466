import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from models.schemas import Contact, ContactCreate, ContactUpdate
from routes.dependencies import clerk_auth, get_contact_store, get_user_store
from services.auth_service import AuthContext, UserNotFound, UserUnauthenticated, resolve_user
from services.contact_service import ContactStore
from services.user_service import UserStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contacts", tags=["Contacts"])

CONTACT_NOT_FOUND = "Contact not found"


def _owner_id(users: UserStore, auth: Optional[AuthContext]) -> str:
    """Internal id of the caller, or the 401/404 the contact endpoints answer with"""
    lookup = resolve_user(users, auth)
    if isinstance(lookup, UserUnauthenticated):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if isinstance(lookup, UserNotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return str(lookup.user["id"])


@router.get("", response_model=List[Contact])
def get_contacts(
    auth: Optional[AuthContext] = Depends(clerk_auth),
    users: UserStore = Depends(get_user_store),
    contacts: ContactStore = Depends(get_contact_store),
):
    """List every contact owned by the caller"""
    try:
        user_id = _owner_id(users, auth)
        return contacts.list_contacts(user_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching contacts: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{contact_id}", response_model=Contact)
def get_contact_by_id(
    contact_id: str,
    auth: Optional[AuthContext] = Depends(clerk_auth),
    users: UserStore = Depends(get_user_store),
    contacts: ContactStore = Depends(get_contact_store),
):
    try:
        user_id = _owner_id(users, auth)
        contact = contacts.get_contact(contact_id, user_id)
        if contact is None:
            raise HTTPException(status_code=404, detail=CONTACT_NOT_FOUND)
        return contact
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching contact {contact_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("", response_model=Contact, status_code=status.HTTP_201_CREATED)
def create_contact(
    payload: ContactCreate,
    auth: Optional[AuthContext] = Depends(clerk_auth),
    users: UserStore = Depends(get_user_store),
    contacts: ContactStore = Depends(get_contact_store),
):
    """
    Create a contact for the caller.

    Example request:
    {
        "name": "Ada",
        "birthdayMonth": 12,
        "birthdayDay": 10,
        "birthdayYear": 1815
    }
    """
    try:
        user_id = _owner_id(users, auth)
        return contacts.create_contact(user_id, payload.model_dump())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating contact: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{contact_id}", response_model=Contact)
def update_contact(
    contact_id: str,
    payload: ContactUpdate,
    auth: Optional[AuthContext] = Depends(clerk_auth),
    users: UserStore = Depends(get_user_store),
    contacts: ContactStore = Depends(get_contact_store),
):
    """Partial update: only the fields present in the body change"""
    try:
        user_id = _owner_id(users, auth)
        updated = contacts.update_contact(contact_id, user_id, payload.changes())
        if updated is None:
            raise HTTPException(status_code=404, detail=CONTACT_NOT_FOUND)
        return updated
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating contact {contact_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contact(
    contact_id: str,
    auth: Optional[AuthContext] = Depends(clerk_auth),
    users: UserStore = Depends(get_user_store),
    contacts: ContactStore = Depends(get_contact_store),
):
    try:
        user_id = _owner_id(users, auth)
        if not contacts.delete_contact(contact_id, user_id):
            raise HTTPException(status_code=404, detail=CONTACT_NOT_FOUND)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting contact {contact_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
