"""
Unit Tests for Viewer Identity and Notifications
"""

import pytest
from fastapi import HTTPException
from unittest.mock import patch

from annotation_controls.core.notifications import ToastMessenger
from annotation_controls.core.security import ANONYMOUS, ViewerProfile, get_current_viewer


class TestGetCurrentViewer:

    @pytest.mark.unit
    def test_no_header_is_anonymous(self):
        viewer = get_current_viewer(x_viewer_id=None, x_viewer_display_name=None)

        assert viewer is ANONYMOUS
        assert not viewer.is_logged_in

    @pytest.mark.unit
    def test_account_id(self):
        viewer = get_current_viewer(x_viewer_id="acct:bob@hypothes.is", x_viewer_display_name="Bob")

        assert viewer == ViewerProfile(userid="acct:bob@hypothes.is", display_name="Bob")
        assert viewer.is_logged_in

    @pytest.mark.unit
    @pytest.mark.parametrize("viewer_id", ["bob", "acct:bob", "acct:@x", "acct:b ob@x"])
    def test_malformed_account_id(self, viewer_id):
        with patch("annotation_controls.core.security.log_security_event") as mock_log:
            with pytest.raises(HTTPException) as exc_info:
                get_current_viewer(x_viewer_id=viewer_id, x_viewer_display_name=None)

        assert exc_info.value.status_code == 401
        mock_log.assert_called_once()


class TestToastMessenger:

    @pytest.mark.unit
    def test_collects_messages_in_order(self):
        toasts = ToastMessenger()
        toasts.success("Annotation deleted", visually_hidden=True)
        toasts.notice("Heads up")

        assert not toasts.has_errors()
        assert toasts.to_list() == [
            {"type": "success", "message": "Annotation deleted", "visually_hidden": True},
            {"type": "notice", "message": "Heads up", "visually_hidden": False},
        ]

    @pytest.mark.unit
    def test_error(self):
        toasts = ToastMessenger()
        toasts.error("Failed to like annotation")

        assert toasts.has_errors()
        assert toasts.to_list()[0]["type"] == "error"
