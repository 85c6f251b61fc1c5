"""
Route-level authorization policy.

A static table maps (method, path pattern) to the roles allowed to call
it. The authorization middleware evaluates it for every request after the
bearer token has (or has not) produced a principal:

- public route              -> allowed
- no principal              -> 401
- rule without roles        -> any principal allowed
- principal lacks all roles -> 403

Patterns ending in ``/**`` match the prefix and everything below it;
other patterns match exactly. When several rules match, the most specific
wins (more literal segments, then exact over wildcard, then
method-restricted over any-method). Unmatched routes require any
authenticated principal.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Sequence

from app.auth.roles import ADMIN, TEACHER, role_authority


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, installed on ``request.state.principal``."""
    username: str
    role: str
    authorities: FrozenSet[str]

    @classmethod
    def from_claims(cls, username: str, role: Optional[str]) -> "Principal":
        authority = role_authority(role)
        return cls(
            username=username,
            role=authority[len("ROLE_"):],
            authorities=frozenset({authority}),
        )

    def has_any_role(self, roles: Iterable[str]) -> bool:
        return any(role_authority(r) in self.authorities for r in roles)


class Decision(str, Enum):
    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class RouteRule:
    pattern: str
    methods: Optional[FrozenSet[str]] = None   # None = any method
    roles: FrozenSet[str] = field(default_factory=frozenset)  # empty = any principal
    public: bool = False

    @property
    def is_wildcard(self) -> bool:
        return self.pattern.endswith("/**")

    @property
    def base(self) -> str:
        base = self.pattern[:-3] if self.is_wildcard else self.pattern
        return base.rstrip("/") or "/"

    def matches(self, method: str, path: str) -> bool:
        if self.methods is not None and method.upper() not in self.methods:
            return False
        path = path.rstrip("/") or "/"
        if self.is_wildcard:
            return path == self.base or path.startswith(self.base.rstrip("/") + "/")
        return path == self.base

    def specificity(self) -> tuple[int, int, int]:
        segments = len([s for s in self.base.split("/") if s])
        return (segments, 0 if self.is_wildcard else 1, 0 if self.methods is None else 1)


def rule(
    pattern: str,
    *roles: str,
    methods: Optional[Sequence[str]] = None,
    public: bool = False,
) -> RouteRule:
    return RouteRule(
        pattern=pattern,
        methods=frozenset(m.upper() for m in methods) if methods else None,
        roles=frozenset(roles),
        public=public,
    )


WRITE = ("POST", "PUT", "PATCH", "DELETE")

ROUTE_RULES: tuple[RouteRule, ...] = (
    # Public
    rule("/", public=True),
    rule("/health", public=True),
    rule("/docs/**", public=True),
    rule("/redoc", public=True),
    rule("/openapi.json", public=True),
    rule("/api/auth/login", methods=["POST"], public=True),
    rule("/api/auth/setup-admin", methods=["POST"], public=True),
    rule("/api/auth/logout", methods=["POST"], public=True),

    # Admin only
    rule("/api/users/**", ADMIN),
    rule("/api/roles/**", ADMIN),
    rule("/api/logs/**", ADMIN),
    rule("/api/settings/**", ADMIN, TEACHER, methods=["GET"]),
    rule("/api/settings/**", ADMIN, methods=WRITE),

    # Admin and Teacher
    rule("/api/students/**", ADMIN, TEACHER),
    rule("/api/teachers/**", ADMIN, TEACHER),
    rule("/api/absences/**", ADMIN, TEACHER),
    rule("/api/courses/**", ADMIN, TEACHER, methods=["GET", *WRITE]),
    rule("/api/enrollments", ADMIN, methods=["POST", "DELETE"]),
    rule("/api/enrollments/**", ADMIN, methods=["DELETE"]),
    rule("/api/enrollments/**", ADMIN, TEACHER, methods=["GET"]),
)


class RoutePolicy:
    """Evaluates the route table for a request."""

    def __init__(self, rules: Sequence[RouteRule] = ROUTE_RULES):
        self.rules = tuple(rules)

    def match(self, method: str, path: str) -> Optional[RouteRule]:
        """Most specific matching rule, or None (authenticated default)."""
        candidates = [r for r in self.rules if r.matches(method, path)]
        if not candidates:
            return None
        return max(candidates, key=RouteRule.specificity)

    def check(self, method: str, path: str, principal: Optional[Principal]) -> Decision:
        matched = self.match(method, path)
        if matched is not None and matched.public:
            return Decision.ALLOW
        if principal is None:
            return Decision.UNAUTHENTICATED
        if matched is None or not matched.roles:
            return Decision.ALLOW
        if principal.has_any_role(matched.roles):
            return Decision.ALLOW
        return Decision.FORBIDDEN


route_policy = RoutePolicy()
