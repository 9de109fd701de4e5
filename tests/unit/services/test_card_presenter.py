"""
Unit Tests for the Annotation Card Presenter
"""

import pytest

from annotation_controls.core.config import Settings
from annotation_controls.core.permissions import private_permissions
from annotation_controls.core.security import ViewerProfile
from annotation_controls.services.card_presenter import CardPresenter, reply_count_label

ALICE = "acct:alice@hypothes.is"
BOB = "acct:bob@hypothes.is"


@pytest.fixture
def presenter(test_settings):
    return CardPresenter(test_settings)


class TestHeader:

    @pytest.mark.unit
    def test_sidebar_header(self, presenter, make_annotation):
        annotation = make_annotation(user_display_name="Alice A.")
        header = presenter.header(annotation, [], route="sidebar", thread_collapsed=False)

        assert header["author"] == {
            "display_name": "Alice A.",
            "link": "https://hypothes.is/users/alice",
        }
        assert header["is_private"] is False
        assert header["timestamps"]["show_edited"] is False
        # Document info and group are only shown outside the sidebar
        assert header["extended_info"]["document"] is None
        assert header["extended_info"]["group"] is None

    @pytest.mark.unit
    def test_document_info_off_sidebar(self, presenter, make_annotation):
        header = presenter.header(make_annotation(), [], route="annotation", thread_collapsed=False)

        assert header["extended_info"]["document"] == {
            "domain": "example.com",
            "title": "Example article",
            "link": "https://example.com/article",
        }
        assert header["extended_info"]["group"] == "__world__"

    @pytest.mark.unit
    def test_third_party_document_not_linked(self, presenter, make_annotation):
        annotation = make_annotation(links={})
        header = presenter.header(annotation, [], route="annotation", thread_collapsed=False)
        assert header["extended_info"]["document"]["link"] == ""

    @pytest.mark.unit
    def test_private_lock_hidden_while_editing(self, presenter, make_annotation):
        annotation = make_annotation(permissions=private_permissions(ALICE).to_dict())

        assert presenter.header(annotation, [], "sidebar", False)["is_private"] is True
        editing = presenter.header(annotation, [], "sidebar", False, is_editing=True)
        assert editing["is_private"] is False
        assert editing["timestamps"] is None

    @pytest.mark.unit
    def test_collapsed_reply_counts_exclude_votes(self, presenter, make_annotation):
        reply = make_annotation(id="r1", references=["a1"])
        related = [
            make_annotation(id="r2", references=["a1", "r1"]),
            make_annotation(id="r3", references=["a1", "r1"]),
            make_annotation(id="v1", references=["a1", "r1"], tags=["vote:like"]),
        ]

        header = presenter.header(reply, related, "sidebar", thread_collapsed=True)

        assert header["reply_count"] == 2
        assert header["reply_count_label"] == "2 replies"
        assert header["extended_info"] is None

    @pytest.mark.unit
    def test_reply_count_label(self):
        assert reply_count_label(1) == "1 reply"
        assert reply_count_label(3) == "3 replies"


class TestBody:

    @pytest.mark.unit
    def test_vote_markers_not_listed(self, presenter, make_annotation):
        annotation = make_annotation(tags=["history", f"vote:like:{BOB}:1"])
        body = presenter.body(annotation)

        assert body["tags"] == [
            {"tag": "history", "href": "https://hypothes.is/search?q=tag:history"}
        ]
        assert body["mention_mode"] == "username"

    @pytest.mark.unit
    def test_third_party_author(self, presenter, make_annotation):
        body = presenter.body(make_annotation(user="acct:alice@lms.example", tags=["x"]))

        assert body["tags"] == [{"tag": "x", "href": None}]
        assert body["mention_mode"] == "display-name"

    @pytest.mark.unit
    def test_hidden_annotation_is_redacted(self, presenter, make_annotation):
        assert presenter.body(make_annotation(hidden=True))["redacted"] is True


class TestActionBar:

    @pytest.mark.unit
    def test_viewer_actions_and_votes(self, presenter, make_annotation):
        annotation = make_annotation(tags=[f"vote:like:{BOB}:1", f"vote:dislike:{ALICE}:2"])
        actions = presenter.action_bar(annotation, [], ViewerProfile(userid=BOB))

        assert actions["permissions"] == {
            "can_edit": False, "can_delete": False, "can_flag": True, "can_share": True,
        }
        assert actions["flag"] == {"flagged": False}
        assert actions["share"] == {"uri": "https://hyp.is/a1"}
        assert actions["votes"]["like_count"] == 1
        assert actions["votes"]["dislike_count"] == 1
        assert actions["votes"]["viewer_vote"] == "like"
        assert actions["votes"]["like"] == {"title": "Like (1)", "pressed": True}
        assert actions["votes"]["dislike"] == {"title": "Dislike (1)", "pressed": False}

    @pytest.mark.unit
    def test_author_actions(self, presenter, make_annotation):
        actions = presenter.action_bar(make_annotation(), [], ViewerProfile(userid=ALICE))

        assert actions["permissions"]["can_edit"] is True
        assert actions["permissions"]["can_delete"] is True
        assert actions["flag"] is None

    @pytest.mark.unit
    def test_anonymous_viewer(self, presenter, make_annotation):
        actions = presenter.action_bar(make_annotation(), [], ViewerProfile())

        assert actions["reply"] == {"requires_login": True}
        assert actions["votes"]["requires_login"] is True
        assert actions["flag"] is None

    @pytest.mark.unit
    def test_no_votes_on_replies(self, presenter, make_annotation):
        actions = presenter.action_bar(make_annotation(references=["a0"]), [], ViewerProfile(userid=BOB))
        assert actions["votes"] is None

    @pytest.mark.unit
    def test_service_can_disable_flagging_and_sharing(self, make_annotation):
        presenter = CardPresenter(Settings(SERVICE_ALLOW_FLAGGING=False, SERVICE_ENABLE_SHARE_LINKS=False))
        actions = presenter.action_bar(make_annotation(), [], ViewerProfile(userid=BOB))

        assert actions["flag"] is None
        assert actions["share"] is None

    @pytest.mark.unit
    def test_reply_scheme_votes(self, reply_settings, make_annotation):
        presenter = CardPresenter(reply_settings)
        related = [make_annotation(id="v1", user=BOB, references=["a1"], tags=["vote:dislike"])]

        actions = presenter.action_bar(make_annotation(id="a1"), related, ViewerProfile(userid=BOB))

        assert actions["votes"]["dislike"] == {"title": "Dislike (1)", "pressed": True}
