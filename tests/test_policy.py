import pytest

from app.auth.policy import Decision, Principal, RoutePolicy, rule, route_policy

ADMIN = Principal.from_claims("root", "ADMIN")
TEACHER = Principal.from_claims("alice", "teacher")
VIEWER = Principal.from_claims("guest", None)


def test_principal_authorities():
    assert TEACHER.role == "TEACHER"
    assert TEACHER.authorities == frozenset({"ROLE_TEACHER"})
    assert VIEWER.authorities == frozenset({"ROLE_VIEWER"})
    assert TEACHER.has_any_role(["admin", "teacher"])
    assert not TEACHER.has_any_role(["ADMIN"])


@pytest.mark.parametrize("method,path", [
    ("POST", "/api/auth/login"),
    ("POST", "/api/auth/setup-admin"),
    ("POST", "/api/auth/logout"),
    ("GET", "/"),
    ("GET", "/health"),
    ("GET", "/docs"),
    ("GET", "/openapi.json"),
])
def test_public_routes_allow_anonymous(method, path):
    assert route_policy.check(method, path, None) == Decision.ALLOW


def test_public_rule_is_method_specific():
    assert route_policy.check("GET", "/api/auth/login", None) == Decision.UNAUTHENTICATED


@pytest.mark.parametrize("method,path", [
    ("GET", "/api/students"),
    ("DELETE", "/api/users/5"),
    ("GET", "/api/auth/me"),
])
def test_protected_routes_reject_anonymous(method, path):
    assert route_policy.check(method, path, None) == Decision.UNAUTHENTICATED


@pytest.mark.parametrize("method,path", [
    ("GET", "/api/users"),
    ("DELETE", "/api/users/5"),
    ("POST", "/api/roles"),
    ("GET", "/api/logs/1"),
    ("PUT", "/api/settings/current-semester"),
    ("DELETE", "/api/settings/theme"),
    ("POST", "/api/enrollments"),
    ("DELETE", "/api/enrollments"),
    ("DELETE", "/api/enrollments/7"),
])
def test_admin_only_routes(method, path):
    assert route_policy.check(method, path, ADMIN) == Decision.ALLOW
    assert route_policy.check(method, path, TEACHER) == Decision.FORBIDDEN


@pytest.mark.parametrize("method,path", [
    ("GET", "/api/students"),
    ("POST", "/api/students"),
    ("DELETE", "/api/teachers/3"),
    ("PUT", "/api/absences"),
    ("GET", "/api/courses/2/absences"),
    ("POST", "/api/courses"),
    ("GET", "/api/enrollments"),
    ("GET", "/api/enrollments/student/4"),
    ("GET", "/api/settings/current-semester"),
])
def test_admin_and_teacher_routes(method, path):
    assert route_policy.check(method, path, ADMIN) == Decision.ALLOW
    assert route_policy.check(method, path, TEACHER) == Decision.ALLOW
    assert route_policy.check(method, path, VIEWER) == Decision.FORBIDDEN


def test_unmatched_route_needs_any_principal():
    assert route_policy.match("GET", "/api/auth/me") is None
    assert route_policy.check("GET", "/api/auth/me", VIEWER) == Decision.ALLOW


def test_trailing_slash_is_ignored():
    assert route_policy.check("GET", "/api/users/", TEACHER) == Decision.FORBIDDEN


def test_wildcard_respects_segment_boundary():
    assert route_policy.match("GET", "/api/usersettings") is None


def test_most_specific_rule_wins():
    policy = RoutePolicy([
        rule("/api/**", "ADMIN"),
        rule("/api/reports/**", "TEACHER"),
        rule("/api/reports/summary", "VIEWER"),
        rule("/api/reports/**", "ADMIN", methods=["DELETE"]),
    ])

    assert policy.match("GET", "/api/other").roles == frozenset({"ADMIN"})
    assert policy.match("GET", "/api/reports/1").roles == frozenset({"TEACHER"})
    assert policy.match("GET", "/api/reports/summary").roles == frozenset({"VIEWER"})
    assert policy.match("DELETE", "/api/reports/1").roles == frozenset({"ADMIN"})


def test_rule_without_roles_allows_any_principal():
    policy = RoutePolicy([rule("/api/open/**")])

    assert policy.check("GET", "/api/open/x", VIEWER) == Decision.ALLOW
    assert policy.check("GET", "/api/open/x", None) == Decision.UNAUTHENTICATED
