"""
tests/test_claims.py -- Claim minting, refresh, and the token codec.

Covers:
  - mint() derives booleans and isAgent from the account row
  - refresh replaces every watched field at once, only when triggered
  - a missing account row leaves the held claims untouched
  - encode/decode keeps the claim set; tampered or foreign tokens decode to None
"""

from __future__ import annotations

from datetime import datetime

from jose import jwt

from auth.claims import REFRESH_TRIGGER, TokenRefresher, mint, should_refresh
from auth.models import Account, Claims
from auth.tokens import decode_claims, encode_claims, token_expiry
from tests.helpers import edit_account


class TestMint:
    def test_agent_account(self, seeded) -> None:
        claims = mint(seeded.store.get_account(seeded.agent_id))
        assert claims.sub == seeded.agent_id
        assert claims.is_agent is True
        assert claims.mobile_number == "+911234567890"
        assert claims.username == "testuser"
        assert claims.company_name == "Acme Realty"
        assert claims.is_email_verified is False
        assert claims.is_mobile_verified is False

    def test_payload_uses_public_key_names(self, seeded) -> None:
        payload = mint(seeded.store.get_account(seeded.agent_id)).to_payload()
        assert payload["isAgent"] is True
        assert payload["mobileNumber"] == "+911234567890"
        assert "phone" not in payload
        assert "hashed_password" not in payload

    def test_plain_user(self, seeded) -> None:
        claims = mint(seeded.store.get_account(seeded.user_id))
        assert claims.is_agent is False
        assert claims.role == "USER"
        assert claims.is_email_verified is True

    def test_unsaved_account_has_no_subject(self) -> None:
        assert mint(Account(email="a@x.com")).sub is None


class TestShouldRefresh:
    def test_explicit_trigger(self) -> None:
        assert should_refresh(Claims(sub="1", username="u"), REFRESH_TRIGGER)

    def test_other_trigger_is_ignored(self) -> None:
        assert not should_refresh(Claims(sub="1", username="u"), "signIn")

    def test_missing_username_forces_refresh(self) -> None:
        assert should_refresh(Claims(sub="1"), None)


class TestTokenRefresher:
    def test_no_trigger_returns_same_object(self, seeded) -> None:
        claims = mint(seeded.store.get_account(seeded.agent_id))
        assert TokenRefresher(seeded.store).refresh(claims) is claims

    def test_no_subject_returns_same_object(self, seeded) -> None:
        claims = Claims(username=None)
        assert TokenRefresher(seeded.store).refresh(claims, REFRESH_TRIGGER) is claims

    def test_replaces_all_watched_fields(self, seeded) -> None:
        store = seeded.store
        claims = mint(store.get_account(seeded.agent_id))
        edit_account(
            store,
            seeded.agent_id,
            role="USER",
            avatar_url="https://cdn.example/new.png",
            username="renamed",
            phone="+911111111111",
            company_name="New Co",
            mobile_verified_at="2026-03-01T00:00:00+00:00",
        )

        refreshed = TokenRefresher(store).refresh(claims, REFRESH_TRIGGER)

        assert refreshed is not claims
        assert refreshed.role == "USER"
        assert refreshed.is_agent is False
        assert refreshed.avatar_url == "https://cdn.example/new.png"
        assert refreshed.username == "renamed"
        assert refreshed.mobile_number == "+911111111111"
        assert refreshed.company_name == "New Co"
        assert refreshed.is_mobile_verified is True
        assert refreshed.is_email_verified is False
        # Held claims are never mutated.
        assert claims.username == "testuser"

    def test_identity_fields_are_not_refreshed(self, seeded) -> None:
        store = seeded.store
        claims = mint(store.get_account(seeded.agent_id))
        edit_account(store, seeded.agent_id, name="Someone Else", email="else@x.com")
        refreshed = TokenRefresher(store).refresh(claims, REFRESH_TRIGGER)
        assert refreshed.name == "Test Agent"
        assert refreshed.email == "agent@x.com"

    def test_missing_username_pulls_from_store(self, seeded) -> None:
        claims = Claims(sub=seeded.agent_id, email="agent@x.com")
        refreshed = TokenRefresher(seeded.store).refresh(claims)
        assert refreshed.username == "testuser"
        assert refreshed.is_agent is True

    def test_missing_row_keeps_claims(self, seeded) -> None:
        claims = Claims(sub="deleted-id", username="gone", role="AGENT", is_agent=True)
        assert TokenRefresher(seeded.store).refresh(claims, REFRESH_TRIGGER) is claims


class TestTokenCodec:
    def test_round_trip(self, seeded) -> None:
        claims = mint(seeded.store.get_account(seeded.agent_id))
        assert decode_claims(encode_claims(claims)) == claims

    def test_decoding_twice_is_stable(self, seeded) -> None:
        token = encode_claims(mint(seeded.store.get_account(seeded.user_id)))
        assert decode_claims(token) == decode_claims(token)

    def test_garbage_token(self) -> None:
        assert decode_claims("not.a.jwt") is None

    def test_foreign_key(self) -> None:
        token = jwt.encode({"sub": "1"}, "x" * 40, algorithm="HS256")
        assert decode_claims(token) is None

    def test_token_without_subject(self) -> None:
        assert decode_claims(encode_claims(Claims(email="a@x.com"))) is None

    def test_expiry_is_iso_timestamp(self) -> None:
        expiry = token_expiry(encode_claims(Claims(sub="1"), expire_seconds=60))
        assert expiry is not None
        assert datetime.fromisoformat(expiry).tzinfo is not None
