"""Validation of hand-off assertion claims.

Each check is an async function over the claims mapping and a shared
:class:`ClaimContext`. Checks run in list order and the first failure is
raised as :class:`InvalidClaimError`, naming only the claim.
"""

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from handoff.sso.errors import ClaimFailure, InvalidClaimError

Claims = Mapping[str, Any]


class ClaimPolicy(BaseModel):
    """Expected claim values, fixed at process start."""

    model_config = ConfigDict(frozen=True)

    issuer: str
    audience: str
    subject: str = "sso"
    iat_leeway: int = 0


class UserRecord(Protocol):
    """What the claim checks need to know about a user."""

    id: int
    use_totp: bool

    @property
    def is_admin(self) -> bool: ...


class UserDirectory(Protocol):
    """Looks up local users by id."""

    async def find_by_id(self, user_id: int) -> UserRecord | None: ...


@dataclass(frozen=True)
class ClaimContext:
    """Everything a check may consult besides the claims themselves."""

    policy: ClaimPolicy
    now: int
    users: UserDirectory


ClaimCheck = Callable[[Claims, ClaimContext], Awaitable[None]]


def _require_str(claims: Claims, name: str) -> str:
    if name not in claims:
        raise InvalidClaimError(name, ClaimFailure.MISSING)
    value = claims[name]
    if not isinstance(value, str):
        raise InvalidClaimError(name, ClaimFailure.WRONG_TYPE)
    return value


def _require_int(claims: Claims, name: str) -> int:
    if name not in claims:
        raise InvalidClaimError(name, ClaimFailure.MISSING)
    value = claims[name]
    # bool is an int subclass; JSON true/false is never a timestamp or id.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidClaimError(name, ClaimFailure.WRONG_TYPE)
    return value


async def check_issuer(claims: Claims, ctx: ClaimContext) -> None:
    if _require_str(claims, "iss") != ctx.policy.issuer:
        raise InvalidClaimError("iss", ClaimFailure.MISMATCH)


async def check_audience(claims: Claims, ctx: ClaimContext) -> None:
    if _require_str(claims, "aud") != ctx.policy.audience:
        raise InvalidClaimError("aud", ClaimFailure.MISMATCH)


async def check_issued_at(claims: Claims, ctx: ClaimContext) -> None:
    if _require_int(claims, "iat") > ctx.now + ctx.policy.iat_leeway:
        raise InvalidClaimError("iat", ClaimFailure.NOT_YET_VALID)


async def check_expiration(claims: Claims, ctx: ClaimContext) -> None:
    if _require_int(claims, "exp") <= ctx.now:
        raise InvalidClaimError("exp", ClaimFailure.EXPIRED)


async def check_subject(claims: Claims, ctx: ClaimContext) -> None:
    if _require_str(claims, "sub") != ctx.policy.subject:
        raise InvalidClaimError("sub", ClaimFailure.MISMATCH)


async def check_user(claims: Claims, ctx: ClaimContext) -> None:
    user = await ctx.users.find_by_id(_require_int(claims, "user"))
    if user is None:
        raise InvalidClaimError("user", ClaimFailure.NOT_FOUND)
    if user.use_totp:
        raise InvalidClaimError("user", ClaimFailure.SECOND_FACTOR_ENABLED)


DEFAULT_CHECKS: tuple[ClaimCheck, ...] = (
    check_issuer,
    check_audience,
    check_issued_at,
    check_expiration,
    check_subject,
    check_user,
)


class ClaimValidator:
    """Runs the ordered claim checks and yields the verified user id."""

    def __init__(
        self,
        policy: ClaimPolicy,
        users: UserDirectory,
        checks: Sequence[ClaimCheck] = DEFAULT_CHECKS,
    ) -> None:
        self._policy = policy
        self._users = users
        self._checks = tuple(checks)

    @property
    def policy(self) -> ClaimPolicy:
        return self._policy

    async def validate(self, claims: Claims, now: int) -> int:
        """Return the ``user`` claim once every check has passed."""
        ctx = ClaimContext(policy=self._policy, now=now, users=self._users)
        for check in self._checks:
            await check(claims, ctx)
        return _require_int(claims, "user")
