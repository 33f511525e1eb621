"""
Unit tests for operator authentication.

Covers:
- Session verification against Supabase Auth
- admin_users membership lookups
- Bearer vs. session token resolution in get_current_user
"""

import pytest
from unittest.mock import patch, MagicMock


def _session_response(user_id="user-123", email="test@example.com"):
    response = MagicMock()
    response.user.model_dump.return_value = {"id": user_id, "email": email}
    return response


class TestVerifySession:

    @patch('blog_comments.services.supabase_client._supabase_client')
    def test_valid_token(self, mock_supabase):
        """Should return the user for a valid access token."""
        from blog_comments.services.supabase_client import verify_session

        mock_supabase.auth.set_session.return_value = _session_response()

        user = verify_session('valid-access-token')

        assert user == {"id": "user-123", "email": "test@example.com"}
        mock_supabase.auth.set_session.assert_called_once_with(
            access_token='valid-access-token',
            refresh_token=''
        )

    @patch('blog_comments.services.supabase_client._supabase_client')
    def test_expired_token(self, mock_supabase):
        """Should return None when Supabase rejects the token."""
        from blog_comments.services.supabase_client import verify_session

        mock_supabase.auth.set_session.side_effect = Exception("Token expired")

        assert verify_session('expired-token') is None

    @patch('blog_comments.services.supabase_client._supabase_client')
    def test_refresh_token_is_forwarded(self, mock_supabase):
        from blog_comments.services.supabase_client import verify_session

        mock_supabase.auth.set_session.return_value = _session_response()

        verify_session('access-token', 'refresh-token')

        mock_supabase.auth.set_session.assert_called_once_with(
            access_token='access-token',
            refresh_token='refresh-token'
        )

    @patch('blog_comments.services.supabase_client._supabase_client', None)
    def test_unconfigured_client(self):
        from blog_comments.services.supabase_client import verify_session
        assert verify_session('any-token') is None


class TestIsAdminUser:

    @patch('blog_comments.services.supabase_client._supabase_admin')
    def test_listed_user_is_admin(self, mock_admin):
        from blog_comments.services.supabase_client import is_admin_user

        query = mock_admin.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value = MagicMock(data=[{"id": "admin-1"}])

        assert is_admin_user("admin-1") is True
        mock_admin.table.return_value.select.return_value.eq.assert_called_once_with("id", "admin-1")

    @patch('blog_comments.services.supabase_client._supabase_admin')
    def test_unlisted_user_is_not_admin(self, mock_admin):
        from blog_comments.services.supabase_client import is_admin_user

        query = mock_admin.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value = MagicMock(data=[])

        assert is_admin_user("user-9") is False

    @patch('blog_comments.services.supabase_client._supabase_admin')
    def test_lookup_failure_denies(self, mock_admin):
        from blog_comments.services.supabase_client import is_admin_user

        mock_admin.table.side_effect = Exception("network down")

        assert is_admin_user("admin-1") is False

    def test_empty_user_id(self):
        from blog_comments.services.supabase_client import is_admin_user
        assert is_admin_user("") is False


class TestCurrentUser:

    def test_bearer_token_wins_over_session(self, app, monkeypatch):
        from blog_comments.services import supabase_client
        from blog_comments.utils.auth import get_current_user

        seen = []

        def fake_verify(access_token, refresh_token=None):
            seen.append(access_token)
            return {"id": "admin-1"}

        monkeypatch.setattr(supabase_client, "verify_session", fake_verify)

        with app.test_request_context(headers={"Authorization": "Bearer header-token"}):
            from flask import session
            session["access_token"] = "session-token"
            assert get_current_user() == {"id": "admin-1"}

        assert seen == ["header-token"]

    def test_invalid_session_token_clears_session(self, app, monkeypatch):
        from blog_comments.services import supabase_client
        from blog_comments.utils.auth import get_current_user

        monkeypatch.setattr(supabase_client, "verify_session", lambda access_token, refresh_token=None: None)

        with app.test_request_context():
            from flask import session
            session["access_token"] = "stale-token"
            session["refresh_token"] = "stale-refresh"

            assert get_current_user() is None
            assert "access_token" not in session
            assert "refresh_token" not in session

    def test_no_token_means_anonymous(self, app):
        from blog_comments.utils.auth import get_current_user, is_authenticated

        with app.test_request_context():
            assert get_current_user() is None
            assert is_authenticated() is False

    @pytest.mark.usefixtures("as_operator")
    def test_operator_check_is_cached_per_request(self, app, monkeypatch):
        from blog_comments.services import supabase_client
        from blog_comments.utils.auth import is_operator

        calls = []
        monkeypatch.setattr(supabase_client, "is_admin_user", lambda user_id: calls.append(user_id) or True)

        with app.test_request_context(headers={"Authorization": "Bearer t"}):
            assert is_operator() is True
            assert is_operator() is True

        assert calls == ["admin-1"]
