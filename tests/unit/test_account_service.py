#!/usr/bin/env python3
"""
Unit tests for the account service.
"""

import threading
from unittest.mock import patch

import pytest

from apps.api.errors import Conflict, InvalidCredentials, NotFound
from apps.api.services import account_service
from apps.api.utils.memory_store import generate_id

from conftest import add_issue


class TestRegisterAndLogin:
    """Tests for register and login."""

    def test_register_normalizes_email_and_hashes(self, store):
        user = account_service.register(store, "Alice", "Alice@Example.com", "secret123")

        assert user.email == "alice@example.com"
        assert user.password_hash != "secret123"

    def test_duplicate_email(self, store):
        account_service.register(store, "Alice", "alice@example.com", "secret123")

        with pytest.raises(Conflict, match="User already exists"):
            account_service.register(store, "Other", "ALICE@example.com", "secret456")

    def test_login(self, store):
        user = account_service.register(store, "Alice", "alice@example.com", "secret123")

        assert account_service.login(store, "alice@EXAMPLE.com", "secret123").id == user.id

    def test_login_failures_are_indistinguishable(self, store):
        account_service.register(store, "Alice", "alice@example.com", "secret123")

        with pytest.raises(InvalidCredentials) as wrong_password:
            account_service.login(store, "alice@example.com", "nope")
        with pytest.raises(InvalidCredentials) as unknown_email:
            account_service.login(store, "bob@example.com", "secret123")

        assert wrong_password.value.to_dict() == unknown_email.value.to_dict() == {"msg": "Invalid credentials"}


class TestProfile:
    """Tests for profile management."""

    def test_update_name(self, store):
        user = account_service.register(store, "Alice", "alice@example.com", "secret123")

        updated = account_service.update_profile(store, user.id, {"name": "Alicia"})

        assert updated.name == "Alicia"
        assert updated.email == "alice@example.com"

    def test_email_taken_by_other_user(self, store):
        alice = account_service.register(store, "Alice", "alice@example.com", "secret123")
        account_service.register(store, "Bob", "bob@example.com", "secret123")

        with pytest.raises(Conflict, match="Email already in use"):
            account_service.update_profile(store, alice.id, {"email": "Bob@example.com"})

    def test_keep_own_email(self, store):
        alice = account_service.register(store, "Alice", "alice@example.com", "secret123")

        updated = account_service.update_profile(store, alice.id, {"email": "ALICE@example.com"})

        assert updated.email == "alice@example.com"

    def test_missing_user(self, store):
        with pytest.raises(NotFound, match="User not found"):
            account_service.get_profile(store, generate_id())

    def test_delete_leaves_issues(self, store):
        alice = account_service.register(store, "Alice", "alice@example.com", "secret123")
        issue = add_issue(store, alice.id)

        account_service.delete_account(store, alice.id)

        assert store.get_user(alice.id) is None
        assert store.get_issue(issue.id).created_by == alice.id
        with pytest.raises(NotFound):
            account_service.delete_account(store, alice.id)


class TestConcurrentRegister:
    """Racing registrations for one email."""

    def test_only_one_registration_wins(self, store):
        # Both threads pass the lookup before either creates
        barrier = threading.Barrier(2, timeout=5)
        lookup = store.find_user_by_email

        def racing_lookup(email):
            found = lookup(email)
            barrier.wait()
            return found

        results = []

        def attempt(name):
            try:
                results.append(account_service.register(store, name, "dup@example.com", "secret123"))
            except Conflict as e:
                results.append(e)

        with patch.object(store, "find_user_by_email", side_effect=racing_lookup):
            threads = [threading.Thread(target=attempt, args=(name,)) for name in ("A", "B")]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        users = [r for r in results if not isinstance(r, Conflict)]
        conflicts = [r for r in results if isinstance(r, Conflict)]
        assert len(users) == 1
        assert len(conflicts) == 1
        assert store.find_user_by_email("dup@example.com").id == users[0].id
