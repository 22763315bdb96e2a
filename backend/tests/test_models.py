"""
Unit tests for AccessLevel and AccessGrant.
"""
from datetime import datetime, timedelta, timezone

import pytest

from docgrant.models.grant import AccessGrant, AccessLevel


class TestAccessLevelParse:
    """Tests for AccessLevel.parse()"""

    def test_enum_passthrough(self):
        assert AccessLevel.parse(AccessLevel.COMMENT) is AccessLevel.COMMENT

    def test_integer_codes(self):
        assert AccessLevel.parse(0) is AccessLevel.VIEW_ONLY
        assert AccessLevel.parse(1) is AccessLevel.COMMENT
        assert AccessLevel.parse(2) is AccessLevel.EDIT

    def test_names_are_case_insensitive(self):
        assert AccessLevel.parse("Edit") is AccessLevel.EDIT
        assert AccessLevel.parse("VIEW_ONLY") is AccessLevel.VIEW_ONLY
        assert AccessLevel.parse("view-only") is AccessLevel.VIEW_ONLY
        assert AccessLevel.parse(" comment ") is AccessLevel.COMMENT

    def test_aliases(self):
        assert AccessLevel.parse("read") is AccessLevel.VIEW_ONLY
        assert AccessLevel.parse("write") is AccessLevel.EDIT

    def test_numeric_strings(self):
        # 查询参数总是字符串
        assert AccessLevel.parse("2") is AccessLevel.EDIT

    @pytest.mark.parametrize("value", [3, -1, "owner", "", True, None, 1.0])
    def test_rejects_unknown(self, value):
        with pytest.raises(ValueError):
            AccessLevel.parse(value)


class TestAccessLevelPermissions:
    """Higher levels carry strictly more capability"""

    def test_ordering(self):
        assert AccessLevel.VIEW_ONLY < AccessLevel.COMMENT < AccessLevel.EDIT

    def test_view_only_flags(self):
        flags = AccessLevel.VIEW_ONLY.permissions()
        assert flags["edit"] is False
        assert flags["comment"] is False
        assert flags["review"] is False
        assert flags["fillForms"] is False
        assert flags["download"] is True
        assert AccessLevel.VIEW_ONLY.editor_mode == "view"

    def test_comment_flags(self):
        flags = AccessLevel.COMMENT.permissions()
        assert flags["comment"] is True
        assert flags["edit"] is False
        # 仅评论会话必须以 edit 模式打开
        assert AccessLevel.COMMENT.editor_mode == "edit"

    def test_edit_flags(self):
        flags = AccessLevel.EDIT.permissions()
        assert flags["edit"] is True
        assert flags["comment"] is True
        assert flags["review"] is True
        assert AccessLevel.EDIT.editor_mode == "edit"

    def test_every_capability_is_explicit(self):
        keys = set(AccessLevel.VIEW_ONLY.permissions())
        assert {"edit", "comment", "review", "fillForms", "modifyFilter", "modifyContentControl"} <= keys
        assert keys == set(AccessLevel.EDIT.permissions())

    @pytest.mark.parametrize("level", list(AccessLevel))
    def test_from_permissions_inverts(self, level):
        assert AccessLevel.from_permissions(level.permissions(), level.editor_mode) is level

    def test_view_mode_wins_over_flags(self):
        assert AccessLevel.from_permissions({"edit": True}, "view") is AccessLevel.VIEW_ONLY


class TestAccessGrant:

    def _grant(self, issued_at, expires_at):
        return AccessGrant(
            document_reference="https://host/doc.docx",
            access_level=AccessLevel.EDIT,
            issued_at=issued_at,
            expires_at=expires_at,
            document_key="k1",
            title="doc.docx",
            file_type="docx",
        )

    def test_validity_and_expiry(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        grant = self._grant(start, start + timedelta(minutes=30))
        assert grant.validity == timedelta(minutes=30)
        assert not grant.is_expired(start + timedelta(minutes=29))
        assert grant.is_expired(start + timedelta(minutes=30))

    def test_is_expired_accepts_naive_utc(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        grant = self._grant(start, start + timedelta(minutes=30))
        assert not grant.is_expired(datetime(2026, 3, 1, 0, 29))
        assert grant.is_expired(datetime(2026, 3, 1, 0, 30))

    def test_expires_must_follow_issue(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        with pytest.raises(ValueError):
            self._grant(start, start)

    def test_immutable(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        grant = self._grant(start, start + timedelta(minutes=1))
        with pytest.raises(AttributeError):
            grant.access_level = AccessLevel.VIEW_ONLY
