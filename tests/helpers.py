"""
tests/helpers.py -- Fakes and constants shared by the test modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import text

from auth.models import GatewayResult
from auth.store import AccountStore
from auth.tokens import verify_password

AGENT_PASSWORD = "agentpass123"
USER_PASSWORD = "userpass123"


@dataclass
class FakeGateway:
    """Scripted OTP gateway. Records every token it is asked about.

    Set `result` to the GatewayResult to return, or `error` to an exception
    instance to raise instead.
    """

    result: GatewayResult = field(default_factory=lambda: GatewayResult(success=False, message="rejected"))
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)
    configured: bool = True

    def verify_token(self, token: str) -> GatewayResult:
        self.calls.append(token)
        if self.error is not None:
            raise self.error
        return self.result


class CountingPasswordCheck:
    """Wraps the real bcrypt check and counts invocations."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, plain: str, hashed: str) -> bool:
        self.calls += 1
        return verify_password(plain, hashed)


def edit_account(store: AccountStore, account_id: str, **fields) -> None:
    """Change profile columns directly, the way a separate profile editor would."""
    assignments = ", ".join(f"{name} = :{name}" for name in fields)
    with store.engine.connect() as conn:
        conn.execute(
            text(f"UPDATE accounts SET {assignments} WHERE id = :account_id"),
            {**fields, "account_id": account_id},
        )
        conn.commit()
