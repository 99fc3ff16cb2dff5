#!/usr/bin/env python3
"""
Firebase Helper for Issue Tracker
Cloud Firestore implementation of StoreProvider
"""

import hashlib
import logging
from collections import Counter
from datetime import timezone
from typing import Optional, List, Dict, Any, Tuple

import firebase_admin
from firebase_admin import credentials, firestore

from apps.api.errors import Conflict, MalformedId, StoreUnavailable
from apps.api.models import User, Issue, utcnow
from apps.api.utils.providers import (
    IssueQuery, ResolutionSummary, SortSpec, resolution_summary_from
)

logger = logging.getLogger(__name__)

ISSUES = "issues"
USERS = "users"
USER_EMAILS = "userEmails"
APP_NAME = "issuetracker"

# Firestore caps the values of one `in` filter
MAX_IN_VALUES = 30


def _in_values(field: str, values) -> List[Any]:
    values = list(values)
    if len(values) > MAX_IN_VALUES:
        raise ValueError(f"Filter on {field} has {len(values)} values; Firestore allows at most {MAX_IN_VALUES}")
    return values


class FirebaseHelper:
    """Helper class for Firebase Firestore operations"""

    def __init__(self, credentials_path: Optional[str] = None, db: Optional[firestore.Client] = None):
        """
        Initialize Firebase helper.

        Args:
            credentials_path: Optional service account JSON. When omitted,
                              application default credentials are used.
            db: Optional pre-built Firestore client (skips app initialization).
        """
        self.credentials_path = credentials_path
        self.db: Optional[firestore.Client] = db
        if self.db is None:
            self._initialize()

    def _initialize(self):
        """Initialize the Firebase app and Firestore client"""
        try:
            try:
                app = firebase_admin.get_app(APP_NAME)
            except ValueError:
                if self.credentials_path:
                    cred = credentials.Certificate(self.credentials_path)
                else:
                    cred = credentials.ApplicationDefault()
                app = firebase_admin.initialize_app(cred, name=APP_NAME)
            self.db = firestore.client(app=app)
            logger.info("Firebase helper initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize Firebase helper: {e}", exc_info=True)
            self.db = None

    def is_available(self) -> bool:
        """Check if Firebase is available"""
        return self.db is not None

    def ping(self) -> None:
        """Issue a cheap read to prove the connection works"""
        if not self.db:
            raise StoreUnavailable("Firestore client not initialized")
        try:
            list(self.db.collection(USERS).limit(1).stream())
        except Exception as e:
            raise StoreUnavailable(str(e)) from e

    def _client(self) -> firestore.Client:
        if not self.db:
            raise StoreUnavailable("Firestore client not initialized")
        return self.db

    def _document(self, collection: str, doc_id: str):
        try:
            return self._client().collection(collection).document(doc_id)
        except ValueError as e:
            raise MalformedId(doc_id) from e

    # Query building
    def _issue_query(self, query: IssueQuery):
        """
        Translate an IssueQuery into a Firestore query.

        Free-text search has no Firestore equivalent and is applied
        client-side by the callers.
        """
        ref = self._client().collection(ISSUES)
        FieldFilter = firestore.FieldFilter

        if query.created_by is not None:
            ref = ref.where(filter=FieldFilter("createdBy", "==", query.created_by))
        if query.assigned_to is not None:
            ref = ref.where(filter=FieldFilter("assignedTo", "==", query.assigned_to))
        if query.involving is not None:
            ref = ref.where(filter=firestore.Or([
                FieldFilter("createdBy", "==", query.involving),
                FieldFilter("assignedTo", "==", query.involving),
            ]))
        if query.assigned:
            ref = ref.where(filter=FieldFilter("assignedTo", "!=", None))
        if query.status is not None:
            ref = ref.where(filter=FieldFilter("status", "==", query.status))
        if query.priority is not None:
            ref = ref.where(filter=FieldFilter("priority", "==", query.priority))
        if query.severity is not None:
            ref = ref.where(filter=FieldFilter("severity", "==", query.severity))
        if query.status_in is not None:
            ref = ref.where(filter=FieldFilter("status", "in", _in_values("status", query.status_in)))
        if query.priority_in is not None:
            ref = ref.where(filter=FieldFilter("priority", "in", _in_values("priority", query.priority_in)))
        if query.created_since is not None:
            ref = ref.where(filter=FieldFilter("createdAt", ">=", query.created_since))
        if query.resolved:
            ref = ref.where(filter=FieldFilter("resolvedAt", "!=", None))
        return ref

    def _stream_issues(self, query: IssueQuery):
        """Stream matching issues, applying client-side search"""
        for doc in self._issue_query(query).stream():
            issue = Issue.from_dict(doc.id, doc.to_dict())
            if query.search and not query.matches_search(issue):
                continue
            yield issue

    # Issue operations
    def create_issue(self, issue: Issue) -> Issue:
        """Create a new issue and return it with its ID"""
        try:
            now = utcnow()
            issue.created_at = issue.created_at or now
            issue.updated_at = issue.updated_at or now
            _, doc_ref = self._client().collection(ISSUES).add(issue.to_dict())
            issue.id = doc_ref.id
            return issue
        except Exception as e:
            logger.error(f"Failed to create issue: {e}")
            raise

    def get_issue(self, issue_id: str) -> Optional[Issue]:
        """Get issue by ID"""
        issue_ref = self._document(ISSUES, issue_id)
        try:
            issue_doc = issue_ref.get()
        except Exception as e:
            logger.error(f"Failed to get issue: {e}")
            raise
        if issue_doc.exists:
            return Issue.from_dict(issue_id, issue_doc.to_dict())
        return None

    def update_issue(self, issue_id: str, fields: Dict[str, Any]) -> Optional[Issue]:
        """Apply field updates and read the issue back"""
        issue_ref = self._document(ISSUES, issue_id)
        try:
            if not issue_ref.get().exists:
                return None
            issue_ref.update(fields)
            return Issue.from_dict(issue_id, issue_ref.get().to_dict())
        except Exception as e:
            logger.error(f"Failed to update issue: {e}")
            raise

    def delete_issue(self, issue_id: str) -> bool:
        """Delete issue"""
        issue_ref = self._document(ISSUES, issue_id)
        try:
            if not issue_ref.get().exists:
                return False
            issue_ref.delete()
            return True
        except Exception as e:
            logger.error(f"Failed to delete issue: {e}")
            raise

    def find_issues(
        self,
        query: IssueQuery,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Issue]:
        """List issues in scope, sorted by (field, descending) pairs"""
        try:
            ref = self._issue_query(query)
            for field, descending in sort or []:
                direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
                ref = ref.order_by(field, direction=direction)

            if query.search:
                issues = [
                    Issue.from_dict(doc.id, doc.to_dict())
                    for doc in ref.stream()
                ]
                issues = [issue for issue in issues if query.matches_search(issue)]
                end = offset + limit if limit is not None else None
                return issues[offset:end]

            if offset:
                ref = ref.offset(offset)
            if limit is not None:
                ref = ref.limit(limit)
            return [Issue.from_dict(doc.id, doc.to_dict()) for doc in ref.stream()]
        except Exception as e:
            logger.error(f"Failed to list issues: {e}")
            raise

    def count_issues(self, query: IssueQuery) -> int:
        """Count issues using a server-side count aggregation"""
        try:
            if query.search:
                return sum(1 for _ in self._stream_issues(query))
            results = self._issue_query(query).count(alias="total").get()
            return int(results[0][0].value) if results else 0
        except Exception as e:
            logger.error(f"Failed to count issues: {e}")
            raise

    def count_by(self, query: IssueQuery, field: str) -> Dict[Any, int]:
        """Group by a field; Firestore has no group-by so only the field is streamed"""
        try:
            counts = Counter(data.get(field) for data in self._select(query, [field]))
            return dict(counts)
        except Exception as e:
            logger.error(f"Failed to group issues by {field}: {e}")
            raise

    def _select(self, query: IssueQuery, fields: List[str]):
        if query.search:
            for issue in self._stream_issues(query):
                yield issue.to_dict()
            return
        for doc in self._issue_query(query).select(fields).stream():
            yield doc.to_dict()

    def count_by_month(self, query: IssueQuery) -> Dict[Tuple[int, int], int]:
        """Group by (year, month) of createdAt in UTC"""
        try:
            counts = Counter()
            for data in self._select(query, ["createdAt"]):
                created_at = data.get("createdAt")
                if created_at is None:
                    continue
                created_at = created_at.astimezone(timezone.utc)
                counts[(created_at.year, created_at.month)] += 1
            return dict(counts)
        except Exception as e:
            logger.error(f"Failed to group issues by month: {e}")
            raise

    def resolution_summary(self, query: IssueQuery) -> ResolutionSummary:
        """Resolution time aggregate over issues with resolvedAt set"""
        try:
            rows = self._select(query.narrow(resolved=True), ["createdAt", "resolvedAt"])
            return resolution_summary_from(
                (data.get("createdAt"), data.get("resolvedAt")) for data in rows
            )
        except Exception as e:
            logger.error(f"Failed to compute resolution summary: {e}")
            raise

    # User operations
    def _email_claim(self, email: str):
        """Document reserving an email address for a single user"""
        key = hashlib.sha256(email.lower().encode("utf-8")).hexdigest()
        return self._client().collection(USER_EMAILS).document(key)

    def create_user(self, user: User) -> User:
        """
        Create a new user.

        The user document and its email claim are written in one
        transaction, so two registrations for the same email cannot both
        succeed.
        """
        db = self._client()
        now = utcnow()
        user.created_at = user.created_at or now
        user.updated_at = user.updated_at or now
        user_ref = db.collection(USERS).document()
        claim_ref = self._email_claim(user.email)

        @firestore.transactional
        def create_in_transaction(transaction):
            if claim_ref.get(transaction=transaction).exists:
                raise Conflict("User already exists")
            transaction.create(claim_ref, {"userId": user_ref.id})
            transaction.create(user_ref, user.to_dict())

        try:
            create_in_transaction(db.transaction())
        except Conflict:
            raise
        except Exception as e:
            logger.error(f"Failed to create user: {e}")
            raise
        user.id = user_ref.id
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        user_ref = self._document(USERS, user_id)
        try:
            user_doc = user_ref.get()
        except Exception as e:
            logger.error(f"Failed to get user: {e}")
            raise
        if user_doc.exists:
            return User.from_dict(user_id, user_doc.to_dict())
        return None

    def get_users(self, user_ids: List[str]) -> Dict[str, User]:
        """Batch-read users; missing documents are skipped"""
        if not user_ids:
            return {}
        try:
            refs = [self._document(USERS, user_id) for user_id in user_ids]
            users = {}
            for doc in self._client().get_all(refs):
                if doc.exists:
                    users[doc.id] = User.from_dict(doc.id, doc.to_dict())
            return users
        except MalformedId:
            raise
        except Exception as e:
            logger.error(f"Failed to get users: {e}")
            raise

    def find_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        try:
            query = self._client().collection(USERS).where(
                filter=firestore.FieldFilter("email", "==", email.lower())
            ).limit(1)
            for doc in query.stream():
                return User.from_dict(doc.id, doc.to_dict())
            return None
        except Exception as e:
            logger.error(f"Failed to find user by email: {e}")
            raise


    def update_user(self, user_id: str, fields: Dict[str, Any]) -> Optional[User]:
        """Update user; an email change moves the email claim in the same transaction"""
        db = self._client()
        user_ref = self._document(USERS, user_id)

        @firestore.transactional
        def update_in_transaction(transaction):
            snapshot = user_ref.get(transaction=transaction)
            if not snapshot.exists:
                return False
            old_email = snapshot.to_dict().get("email", "")
            new_email = fields.get("email")
            if new_email and new_email.lower() != old_email.lower():
                new_claim = self._email_claim(new_email)
                claim = new_claim.get(transaction=transaction)
                if claim.exists and claim.to_dict().get("userId") != user_id:
                    raise Conflict("Email already in use")
                transaction.delete(self._email_claim(old_email))
                transaction.set(new_claim, {"userId": user_id})
            transaction.update(user_ref, fields)
            return True

        try:
            if not update_in_transaction(db.transaction()):
                return None
            return User.from_dict(user_id, user_ref.get().to_dict())
        except Conflict:
            raise
        except Exception as e:
            logger.error(f"Failed to update user: {e}")
            raise

    def delete_user(self, user_id: str) -> bool:
        """Delete user and release the email claim"""
        db = self._client()
        user_ref = self._document(USERS, user_id)

        @firestore.transactional
        def delete_in_transaction(transaction):
            snapshot = user_ref.get(transaction=transaction)
            if not snapshot.exists:
                return False
            transaction.delete(self._email_claim(snapshot.to_dict().get("email", "")))
            transaction.delete(user_ref)
            return True

        try:
            return delete_in_transaction(db.transaction())
        except Exception as e:
            logger.error(f"Failed to delete user: {e}")
            raise
