import pytest

from hobbly_bot.core.authorization import Decision, decide, is_allowed, normalize_roles
from hobbly_bot.core.models import Identity, Role


def ident(role: Role) -> Identity:
    return Identity(id="x", email="x@example.com", role=role)


@pytest.mark.parametrize(
    "required",
    [set(), {"user"}, {"organizer"}, {"admin"}, {"organizer", "user"}, {"nonsense"}],
)
def test_admin_always_renders(required):
    assert decide(ident(Role.ADMIN), False, required) is Decision.RENDER


def test_organizer_access():
    assert decide(ident(Role.ORGANIZER), False, {"organizer"}) is Decision.RENDER
    assert decide(ident(Role.ORGANIZER), False, {"user"}) is Decision.RENDER
    assert decide(ident(Role.ORGANIZER), False, {"admin"}) is Decision.REDIRECT_TO_UNAUTHORIZED


def test_user_cannot_open_organizer_pages():
    assert decide(ident(Role.USER), False, {"organizer"}) is Decision.REDIRECT_TO_UNAUTHORIZED
    assert decide(ident(Role.USER), False, {"user"}) is Decision.RENDER


def test_anonymous_goes_to_login():
    assert decide(None, False, {"organizer"}) is Decision.REDIRECT_TO_LOGIN
    assert decide(None, False, None) is Decision.REDIRECT_TO_LOGIN


def test_loading_is_pending_even_without_identity():
    assert decide(None, True, {"admin"}) is Decision.PENDING
    assert decide(ident(Role.USER), True, {"admin"}) is Decision.PENDING


def test_no_required_roles_lets_any_identity_in():
    assert decide(ident(Role.USER), False, []) is Decision.RENDER


def test_role_names_are_case_insensitive():
    assert normalize_roles(["Organizer", Role.USER, " ADMIN "]) == {"organizer", "user", "admin"}
    assert is_allowed(Role.ORGANIZER, ["ORGANIZER"])


def test_listed_role_passes_even_beside_higher_roles():
    # A user is let in when "user" is one of the accepted roles.
    assert is_allowed(Role.USER, {"user", "admin"})
    assert not is_allowed(Role.USER, {"organizer", "admin"})


def test_unknown_role_names_never_match():
    assert not is_allowed(Role.ORGANIZER, {"superuser"})
