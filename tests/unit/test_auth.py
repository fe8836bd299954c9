"""
Unit tests for the users file.
"""
import json

import pytest

from bot.auth import Auth


@pytest.fixture
def users_path(tmp_path):
    return tmp_path / "users.json"


class TestAuth:

    def test_authorized_and_admin(self, users_path):
        users_path.write_text(json.dumps({"authorized_users": [
            {"id": 1, "name": "owner", "admin": True},
            {"id": 2, "name": "writer"},
        ]}), encoding="utf-8")
        auth = Auth(users_path)

        assert auth.is_authorized(1) and auth.is_admin(1)
        assert auth.is_authorized(2) and not auth.is_admin(2)
        assert not auth.is_authorized(3)

    def test_missing_file_denies_everyone(self, users_path):
        assert not Auth(users_path).is_authorized(1)

    @pytest.mark.parametrize("raw", [b"{not json", b'{"authorized_users": [{"id": 1, "name": "\xff"}]}'])
    def test_unreadable_file_denies_everyone(self, users_path, raw):
        users_path.write_bytes(raw)

        assert not Auth(users_path).is_authorized(1)
