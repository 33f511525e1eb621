# tests/conftest.py
"""
Test configuration and shared fixtures.

Provides the Flask app, test client, an in-memory stand-in for the Supabase
table API (select/insert/update with eq/or_/order/limit), and a scripted
moderation provider.
"""

import os
import sys
import uuid
from datetime import datetime, timedelta, timezone

import pytest

# Add the project root to sys.path
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from blog_comments.services.comments import CommentStore  # noqa: E402
from blog_comments.services.moderation import ModerationSettings  # noqa: E402
from blog_comments.services.moderation_provider import ProviderResult  # noqa: E402
from blog_comments.services.comment_review import CommentModerator, init_moderation  # noqa: E402
from blog_comments.utils.errors import ProviderUnavailableError  # noqa: E402


# ============================================================================
# In-memory Supabase table API
# ============================================================================

class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.max_rows = None

    def select(self, columns="*"):
        self.op = "select"
        return self

    def insert(self, row):
        self.op = "insert"
        self.payload = row
        return self

    def update(self, changes):
        self.op = "update"
        self.payload = changes
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def or_(self, expression):
        clauses = []
        for part in expression.split(","):
            column, _, raw = part.split(".", 2)
            value = {"true": True, "false": False}.get(raw, raw)
            clauses.append((column, value))
        self.filters.append(lambda row: any(row.get(c) == v for c, v in clauses))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def execute(self):
        self.db.queries.append(self)
        if self.db.fail or self.op in self.db.fail_ops:
            raise Exception("connection refused")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            row = dict(self.payload)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("flag_reason", None)
            rows.append(row)
            return FakeResponse([dict(row)])

        matched = [r for r in rows if all(f(r) for f in self.filters)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        if self.order_by:
            matched.sort(key=lambda r: r.get(self.order_by) or "", reverse=self.descending)
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return FakeResponse([dict(r) for r in matched])


class FakeSupabase:
    """Just enough of supabase.Client.table() for the comment store."""

    def __init__(self):
        self.tables = {}
        self.queries = []
        self.fail = False
        self.fail_ops = set()

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name="blog_comments"):
        return self.tables.setdefault(name, [])


class FakeProvider:
    """Moderation provider returning a scripted result or failure."""

    def __init__(self, flagged=False, categories=None, error=None):
        self.flagged = flagged
        self.categories = categories or {}
        self.error = error
        self.calls = []

    def check(self, text):
        self.calls.append(text)
        if self.error:
            raise ProviderUnavailableError(self.error)
        return ProviderResult(flagged=self.flagged, categories=dict(self.categories))


def make_row(created_at=None, **overrides):
    """Comment row as Supabase would return it."""
    created = created_at or datetime.now(timezone.utc)
    row = {
        "id": str(uuid.uuid4()),
        "post_id": "hello-world",
        "author_name": "Ada",
        "author_email": "ada@example.com",
        "content": "Great post, thanks for sharing this!",
        "created_at": created.isoformat(),
        "approved": False,
        "flagged": False,
        "flag_reason": None,
        "archived": False,
    }
    row.update(overrides)
    return row


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def store(fake_db):
    return CommentStore(client=fake_db)


@pytest.fixture
def clean_provider():
    return FakeProvider(flagged=False)


@pytest.fixture
def settings():
    return ModerationSettings(provider_key="test-openai-key")


@pytest.fixture
def moderator(settings, store, clean_provider):
    return CommentModerator(settings, store=store, provider=clean_provider)


@pytest.fixture
def old_timestamp():
    return datetime.now(timezone.utc) - timedelta(hours=30)


@pytest.fixture
def app(fake_db, clean_provider):
    """Create and configure a Flask app instance for testing."""
    os.environ["APP_CONFIG"] = "blog_comments.config.TestConfig"
    os.environ["SUPABASE_URL"] = ""
    os.environ["SUPABASE_ANON_KEY"] = ""

    from blog_comments import create_app

    app = create_app()
    app.config.update({
        "TESTING": True,
        "WTF_CSRF_ENABLED": False,
        "RATELIMIT_ENABLED": False,
    })
    init_moderation(app, store=CommentStore(client=fake_db), provider=clean_provider)

    yield app


@pytest.fixture
def client(app):
    """Create a test client for the Flask app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask app."""
    return app.test_cli_runner()


@pytest.fixture
def auth_headers():
    """Headers for a request carrying an operator's access token."""
    return {"Authorization": "Bearer test-token"}


@pytest.fixture
def as_operator(monkeypatch):
    """Treat the Bearer token as a signed-in operator."""
    from blog_comments.services import supabase_client
    monkeypatch.setattr(supabase_client, "verify_session",
                        lambda access_token, refresh_token=None: {"id": "admin-1", "email": "admin@example.com"})
    monkeypatch.setattr(supabase_client, "is_admin_user", lambda user_id: user_id == "admin-1")


@pytest.fixture
def as_visitor(monkeypatch):
    """Signed in, but not listed in admin_users."""
    from blog_comments.services import supabase_client
    monkeypatch.setattr(supabase_client, "verify_session",
                        lambda access_token, refresh_token=None: {"id": "user-9", "email": "user@example.com"})
    monkeypatch.setattr(supabase_client, "is_admin_user", lambda user_id: False)


@pytest.fixture
def make_provider():
    """Factory for scripted moderation providers."""
    return FakeProvider


@pytest.fixture
def make_comment_row():
    """Factory for comment rows as Supabase returns them."""
    return make_row
