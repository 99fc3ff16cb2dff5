#!/usr/bin/env python3
"""
Account service: registration, login and self-service profile management.
"""

import logging
from typing import Dict, Any

from apps.api.auth import hash_password, verify_password
from apps.api.errors import Conflict, InvalidCredentials, NotFound
from apps.api.models import User, utcnow
from apps.api.utils.providers import StoreProvider

logger = logging.getLogger(__name__)


def register(store: StoreProvider, name: str, email: str, password: str) -> User:
    """Create a user; fails with Conflict when the email is already registered"""
    email = email.lower()
    if store.find_user_by_email(email):
        raise Conflict("User already exists")

    user = store.create_user(User(
        name=name,
        email=email,
        password_hash=hash_password(password),
    ))
    logger.info(f"Registered user {user.id}")
    return user


def login(store: StoreProvider, email: str, password: str) -> User:
    """
    Authenticate by email and password.

    Unknown email and wrong password raise the same InvalidCredentials so
    the response does not reveal which accounts exist.
    """
    user = store.find_user_by_email(email.lower())
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    return user


def get_profile(store: StoreProvider, user_id: str) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def update_profile(store: StoreProvider, user_id: str, changes: Dict[str, Any]) -> User:
    """Update name and/or email; a new email must not belong to another user"""
    user = get_profile(store, user_id)

    fields: Dict[str, Any] = {}
    if changes.get("name"):
        fields["name"] = changes["name"]
    if changes.get("email"):
        email = changes["email"].lower()
        if email != user.email:
            owner = store.find_user_by_email(email)
            if owner is not None and owner.id != user_id:
                raise Conflict("Email already in use")
        fields["email"] = email

    if not fields:
        return user

    fields["updatedAt"] = utcnow()
    updated = store.update_user(user_id, fields)
    if updated is None:
        raise NotFound("User not found")
    return updated


def delete_account(store: StoreProvider, user_id: str) -> None:
    """Hard-delete the user; issues referencing the user are left as they are"""
    if not store.delete_user(user_id):
        raise NotFound("User not found")
    logger.info(f"Deleted user {user_id}")
