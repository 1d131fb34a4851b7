"""
tests/test_session_projection.py -- SessionProjector: claims plus store into SessionView.
"""

from __future__ import annotations

from auth.claims import mint
from auth.models import Claims, SessionShell, SessionView
from auth.session import SessionProjector, coalesce
from tests.helpers import edit_account


def test_coalesce() -> None:
    assert coalesce("a", "b") == "a"
    assert coalesce(None, "b") == "b"
    assert coalesce("", "b") == "b"
    assert coalesce(False, True) is True
    assert coalesce(None, None) is None


class TestProject:
    def test_no_subject_returns_shell_itself(self, seeded) -> None:
        shell = SessionShell(name="n", email="e@x.com")
        projector = SessionProjector(seeded.store)
        assert projector.project(Claims(), shell) is shell
        assert projector.project(None, shell) is shell

    def test_claims_win_over_store(self, seeded) -> None:
        store = seeded.store
        claims = mint(store.get_account(seeded.agent_id))
        edit_account(store, seeded.agent_id, role="USER", username="renamed", company_name="Other")

        view = SessionProjector(store).project(claims, SessionShell(name="Test Agent", email="agent@x.com"))

        assert isinstance(view, SessionView)
        assert view.role == "AGENT"
        assert view.is_agent is True
        assert view.username == "testuser"
        assert view.company_name == "Acme Realty"

    def test_store_fills_missing_claims(self, seeded) -> None:
        claims = Claims(sub=seeded.agent_id, email="agent@x.com", name="Test Agent")
        view = SessionProjector(seeded.store).project(claims, SessionShell())
        assert view.role == "AGENT"
        assert view.is_agent is True
        assert view.username == "testuser"
        assert view.mobile_number == "+911234567890"
        assert view.company_name == "Acme Realty"
        assert view.image == view.image_link == "https://cdn.example/agent.png"

    def test_verified_flag_from_store_timestamp(self, seeded) -> None:
        claims = Claims(sub=seeded.user_id, is_email_verified=False)
        view = SessionProjector(seeded.store).project(claims, SessionShell())
        assert view.is_email_verified is True
        assert view.is_mobile_verified is False

    def test_verified_flag_from_claims_without_row(self, seeded) -> None:
        claims = Claims(sub="deleted-id", is_mobile_verified=True, role="USER")
        view = SessionProjector(seeded.store).project(claims, SessionShell())
        assert view.is_mobile_verified is True
        assert view.role == "USER"

    def test_shell_name_and_email_win(self, seeded) -> None:
        claims = Claims(sub=seeded.user_id, name="Claims Name", email="claims@x.com")
        view = SessionProjector(seeded.store).project(claims, SessionShell(name="Shell Name", email="shell@x.com"))
        assert view.name == "Shell Name"
        assert view.email == "shell@x.com"

    def test_shell_image_is_last_resort(self, seeded) -> None:
        claims = Claims(sub=seeded.user_id)
        view = SessionProjector(seeded.store).project(claims, SessionShell(image="https://cdn.example/shell.png"))
        assert view.image == "https://cdn.example/shell.png"

    def test_expires_carried_from_shell(self, seeded) -> None:
        shell = SessionShell(expires="2026-12-01T00:00:00+00:00")
        view = SessionProjector(seeded.store).project(Claims(sub=seeded.user_id), shell)
        assert view.expires == shell.expires

    def test_projection_is_idempotent(self, seeded) -> None:
        projector = SessionProjector(seeded.store)
        claims = mint(seeded.store.get_account(seeded.agent_id))
        shell = SessionShell(name="Test Agent", email="agent@x.com")
        assert projector.project(claims, shell) == projector.project(claims, shell)

    def test_public_shape_has_no_timestamps(self, seeded) -> None:
        claims = mint(seeded.store.get_account(seeded.user_id))
        public = SessionProjector(seeded.store).project(claims, SessionShell()).to_dict()
        assert set(public) == {
            "id",
            "email",
            "name",
            "role",
            "image",
            "username",
            "mobileNumber",
            "isEmailVerified",
            "isMobileVerified",
            "isAgent",
            "companyName",
            "imageLink",
        }
        assert "2026-01-01T00:00:00+00:00" not in public.values()
