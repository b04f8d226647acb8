import asyncio

import pytest

from fakes import Clock, FakeAuthProvider, FakeObjectStore, FakeTableStore, activity_row, network_down
from hobbly_bot.core.authorization import Decision
from hobbly_bot.core.errors import AuthError
from hobbly_bot.core.models import Role
from hobbly_bot.data.directory import ACTIVITIES, ActivityDirectory, ImageUpload
from hobbly_bot.data.session import PROFILES, SessionState, SessionStore
from hobbly_bot.pages.activities import (
    ActivitiesPage,
    ActivityDetailPage,
    ActivityEditorPage,
    BrowsePage,
    TrashPage,
    UsersPage,
)
from hobbly_bot.pages.auth import LoginPage, SignUpPage, WelcomePage
from hobbly_bot.pages.base import SIGN_IN_NOTICE
from hobbly_bot.pages.dashboard import DashboardPage
from hobbly_bot.pages.profile import PersonalInfoPage

PASSWORD = "Secret123!"

ACCOUNTS = {
    "org@example.com": ("u1", "organizer", "Olli Organizer"),
    "other@example.com": ("u2", "organizer", "Oona Other"),
    "boss@example.com": ("boss", "admin", "Anna Admin"),
    "pat@example.com": ("pat", "user", "Pat Person"),
}


def run(coro):
    return asyncio.run(coro)


@pytest.fixture()
def store():
    return FakeTableStore(
        {
            PROFILES: [
                {
                    "id": uid,
                    "email": email,
                    "role": role,
                    "full_name": name,
                    "organization_name": "Hobby Club" if role == "organizer" else None,
                }
                for email, (uid, role, name) in ACCOUNTS.items()
            ],
            "categories": [{"id": "cat-sport", "name": "Sport", "icon": "⚽"}],
        }
    )


@pytest.fixture()
def directory(store):
    return ActivityDirectory(store, FakeObjectStore(), clock=Clock())


@pytest.fixture()
def session_for(store):
    def make(email=None):
        auth = FakeAuthProvider()
        for mail, (uid, _role, _name) in ACCOUNTS.items():
            auth.add_account(mail, PASSWORD, user_id=uid)
        session = SessionStore(auth, store)
        if email:
            run(session.sign_in(email, PASSWORD))
        return session

    return make


# ----------------------------------------------------------------------
# Gate
# ----------------------------------------------------------------------
def test_protected_page_redirects_anonymous_to_login(session_for, directory):
    screen = run(DashboardPage(session_for(), directory).open())
    assert screen.decision is Decision.REDIRECT_TO_LOGIN
    assert screen.redirect == "login"
    assert screen.notice == SIGN_IN_NOTICE
    assert not screen.ok


def test_plain_user_is_sent_to_unauthorized(session_for, directory):
    screen = run(ActivitiesPage(session_for("pat@example.com"), directory).open())
    assert screen.decision is Decision.REDIRECT_TO_UNAUTHORIZED
    assert screen.redirect == "unauthorized"


def test_loading_session_shows_pending(session_for, directory):
    session = session_for()
    session.state = SessionState.AUTHENTICATING
    screen = run(DashboardPage(session, directory).open())
    assert screen.decision is Decision.PENDING
    assert screen.lines == ["Loading..."]


def test_render_without_identity_raises_auth_error(session_for, directory):
    with pytest.raises(AuthError) as err:
        run(DashboardPage(session_for(), directory).render())
    assert err.value.code == "not_authenticated"


def test_users_page_is_admin_only(session_for, directory, store):
    store.rows(ACTIVITIES).extend(
        [activity_row(organizer_id="u1"), activity_row(organizer_id="u2")]
    )
    denied = run(UsersPage(session_for("org@example.com"), directory).open())
    assert denied.redirect == "unauthorized"
    screen = run(UsersPage(session_for("boss@example.com"), directory).open())
    assert screen.ok
    assert len(screen.table.items) == 2


# ----------------------------------------------------------------------
# Dashboard and activities table
# ----------------------------------------------------------------------
def test_dashboard_shows_stats_header_and_sidebar(session_for, directory, store):
    store.rows(ACTIVITIES).extend(
        [
            activity_row(organizer_id="u1", current_participants=3),
            activity_row(organizer_id="u1", current_participants=2),
        ]
    )
    screen = run(DashboardPage(session_for("org@example.com"), directory).open())
    assert screen.ok
    assert "Total Activities: 2" in screen.lines
    assert "Total Participants: 5" in screen.lines
    assert screen.header.user_name == "Olli Organizer"
    assert screen.sidebar.role is Role.ORGANIZER
    assert screen.sidebar.active == "dashboard"
    assert [b.action for b in screen.actions] == ["activities", "activity_editor", "personal_info"]


def test_network_failure_becomes_error_banner(session_for, directory, store):
    session = session_for("org@example.com")
    store.fail_with = network_down()
    screen = run(DashboardPage(session, directory).open())
    assert screen.error == "Could not reach the server. Please try again."
    assert screen.header is not None


def test_activities_table_pages_by_five(session_for, directory, store):
    store.rows(ACTIVITIES).extend(activity_row(organizer_id="u1") for _ in range(7))
    screen = run(ActivitiesPage(session_for("org@example.com"), directory).open())
    assert len(screen.table.items) == 5
    assert screen.pagination.total_pages == 2
    assert screen.state == {"page": 1, "search": "", "total": 7}
    assert screen.table.columns[0].label == "Category"
    second = run(
        ActivitiesPage(session_for("org@example.com"), directory).go_to(2)
    )
    assert len(second.table.items) == 2
    assert second.pagination.next_disabled


def test_organizer_search_is_scoped_to_own_activities(session_for, directory, store):
    store.rows(ACTIVITIES).extend(
        [
            activity_row(id="mine", organizer_id="u1", title="Yoga Basics"),
            activity_row(id="theirs", organizer_id="u2", title="Yoga Advanced"),
        ]
    )
    mine = run(ActivitiesPage(session_for("org@example.com"), directory).search(" yoga "))
    assert [a.id for a in mine.table.items] == ["mine"]
    assert mine.lines == ['Results for "yoga"']
    everything = run(ActivitiesPage(session_for("boss@example.com"), directory).search("yoga"))
    assert {a.id for a in everything.table.items} == {"mine", "theirs"}


def test_search_without_matches_shows_empty_message(session_for, directory):
    screen = run(ActivitiesPage(session_for("org@example.com"), directory).search("zzz"))
    assert screen.table.is_empty
    assert screen.table.render() == "No activities found"


def test_delete_marks_activity_and_steps_back_a_page(session_for, directory, store):
    store.rows(ACTIVITIES).extend(
        activity_row(id=f"a{i}", organizer_id="u1", created_at=f"2025-01-0{i + 1}T00:00:00+00:00")
        for i in range(6)
    )
    page = ActivitiesPage(session_for("org@example.com"), directory)
    screen = run(page.delete("a0", page=2))
    assert screen.notice == "Activity deleted."
    assert screen.state["page"] == 1
    assert len(screen.table.items) == 5
    deleted = [r for r in store.rows(ACTIVITIES) if r["id"] == "a0"]
    assert deleted[0]["is_deleted"] is True


def test_delete_of_someone_elses_activity_is_refused(session_for, directory, store):
    store.rows(ACTIVITIES).append(activity_row(id="a1", organizer_id="u1"))
    screen = run(ActivitiesPage(session_for("other@example.com"), directory).delete("a1"))
    assert screen.error == "You can only delete your own activities."
    assert store.rows(ACTIVITIES)[0]["is_deleted"] is False


def test_trash_lists_own_deleted_activities(session_for, directory, store):
    store.rows(ACTIVITIES).extend(
        [
            activity_row(id="gone", organizer_id="u1", is_deleted=True),
            activity_row(id="other", organizer_id="u2", is_deleted=True),
            activity_row(id="live", organizer_id="u1"),
        ]
    )
    screen = run(TrashPage(session_for("org@example.com"), directory).open())
    assert [a.id for a in screen.table.items] == ["gone"]


# ----------------------------------------------------------------------
# Public browsing and detail
# ----------------------------------------------------------------------
def test_browse_is_public_and_filters(session_for, directory, store):
    store.rows(ACTIVITIES).extend(
        [
            activity_row(id="event", type="event", title="Yoga Festival", price=30),
            activity_row(id="club", type="club", title="Yoga Club", price=5),
        ]
    )
    screen = run(BrowsePage(session_for(), directory).open(search="yoga", type="event"))
    assert screen.ok
    assert [a.id for a in screen.table.items] == ["event"]
    assert screen.state["filters"] == {"search": "yoga", "type": "event"}
    assert screen.sidebar is None


@pytest.mark.parametrize(
    "params, field",
    [({"type": "party"}, "type"), ({"min_price": 20, "max_price": 5}, "max_price")],
)
def test_browse_rejects_bad_filters(session_for, directory, params, field):
    screen = run(BrowsePage(session_for(), directory).open(**params))
    assert screen.error == "Please correct the errors above."
    assert field in screen.field_errors


@pytest.mark.parametrize(
    "email, editable",
    [(None, False), ("org@example.com", True), ("other@example.com", False), ("boss@example.com", True)],
)
def test_detail_offers_edit_only_to_owner_and_admin(session_for, directory, store, email, editable):
    store.rows(ACTIVITIES).append(activity_row(id="a1", organizer_id="u1", price=12))
    screen = run(ActivityDetailPage(session_for(email), directory).open(activity_id="a1"))
    assert screen.title == "Untitled"
    assert screen.lines[0] == "📅 Activity · Sport"
    assert "Price: 12 EUR" in screen.lines
    actions = [b.action for b in screen.actions]
    assert actions == (["activity_editor", "delete_activity"] if editable else [])
    if editable:
        assert screen.actions[0].payload == {"activity_id": "a1"}


def test_detail_of_deleted_activity_has_no_actions(session_for, directory, store):
    store.rows(ACTIVITIES).append(activity_row(id="a1", organizer_id="u1", is_deleted=True))
    screen = run(ActivityDetailPage(session_for("org@example.com"), directory).open(activity_id="a1"))
    assert screen.actions == []
    assert "Status: Rejected" in screen.lines


def test_detail_of_missing_activity(session_for, directory):
    screen = run(ActivityDetailPage(session_for(), directory).open(activity_id="missing"))
    assert screen.error == "Activity missing not found."


# ----------------------------------------------------------------------
# Editor
# ----------------------------------------------------------------------
def test_editor_prefills_contact_email(session_for, directory):
    screen = run(ActivityEditorPage(session_for("org@example.com"), directory).open())
    values = {f.name: f.value for f in screen.fields}
    assert values["contact_email"] == "org@example.com"
    assert values["type"] == "activity"
    assert screen.title == "Create Activity"


def test_editor_create(session_for, directory, store):
    page = ActivityEditorPage(session_for("org@example.com"), directory)
    screen = run(
        page.create(
            {
                "title": "Pottery",
                "description": "Wheel throwing",
                "type": "hobby_opportunity",
                "category_id": "cat-sport",
                "location": "Espoo",
                "price": "12,5",
                "start_date": "2025-05-01 18:00",
                "contact_email": "org@example.com",
                "tags": "clay, art",
            }
        )
    )
    assert screen.notice == "Activity created."
    assert screen.redirect == "activity"
    row = store.rows(ACTIVITIES)[0]
    assert screen.state == {"activity_id": row["id"]}
    assert row["organizer_id"] == "u1"
    assert row["price"] == 12.5
    assert row["type"] == "hobby_opportunity"


def test_editor_create_reports_field_errors(session_for, directory, store):
    page = ActivityEditorPage(session_for("org@example.com"), directory)
    screen = run(page.create({"title": "Pottery", "price": "cheap"}))
    assert screen.error == "Please correct the errors above."
    assert screen.field_errors == {"price": "Please enter a number"}
    fields = {f.name: f for f in screen.fields}
    assert fields["price"].error == "Please enter a number"
    assert fields["title"].value == "Pottery"
    assert store.rows(ACTIVITIES) == []


def test_editor_create_runs_form_validation(session_for, directory):
    page = ActivityEditorPage(session_for("org@example.com"), directory)
    screen = run(page.create({"title": "Pottery", "contact_email": "not-an-email"}))
    assert "location" in screen.field_errors
    assert screen.field_errors["contact_email"] == "Please enter a valid email address"


def test_editor_edit_merges_changes(session_for, directory, store):
    store.rows(ACTIVITIES).append(
        activity_row(id="a1", organizer_id="u1", title="Yoga", price=10)
    )
    page = ActivityEditorPage(session_for("org@example.com"), directory)
    opened = run(page.open(activity_id="a1"))
    assert opened.title == "Edit Activity"
    screen = run(page.edit("a1", {"price": "0", "address": None}))
    assert screen.notice == "Activity updated."
    row = store.rows(ACTIVITIES)[0]
    assert row["price"] == 0
    assert row["title"] == "Yoga"


def test_editor_edit_by_other_organizer(session_for, directory, store):
    store.rows(ACTIVITIES).append(activity_row(id="a1", organizer_id="u1"))
    page = ActivityEditorPage(session_for("other@example.com"), directory)
    screen = run(page.edit("a1", {"title": "Mine now"}))
    assert screen.error == "You can only edit your own activities."


def test_editor_upload(session_for, directory, store):
    store.rows(ACTIVITIES).append(activity_row(id="a1", organizer_id="u1"))
    page = ActivityEditorPage(session_for("org@example.com"), directory)
    screen = run(page.upload("a1", [ImageUpload("cover.png", b"png", "image/png")]))
    assert screen.notice == "Uploaded 1 image(s)."
    assert store.rows(ACTIVITIES)[0]["image_urls"]


# ----------------------------------------------------------------------
# Sign-in, sign-up and profile
# ----------------------------------------------------------------------
def test_login_with_wrong_password_keeps_email(session_for, directory):
    screen = run(LoginPage(session_for(), directory).submit("org@example.com", "wrong"))
    assert screen.error == "Invalid email or password."
    assert screen.fields[0].value == "org@example.com"


def test_login_with_blank_fields(session_for, directory):
    screen = run(LoginPage(session_for(), directory).submit("", ""))
    assert screen.error == "Please fill in all fields"
    assert screen.field_errors == {}


@pytest.mark.parametrize(
    "email, landing", [("org@example.com", "dashboard"), ("pat@example.com", "browse")]
)
def test_login_redirects_by_role(session_for, directory, email, landing):
    screen = run(LoginPage(session_for(), directory).submit(email, PASSWORD))
    assert screen.redirect == landing
    assert screen.notice.startswith("Welcome back, ")


def test_welcome_redirects_signed_in_user(session_for, directory):
    screen = run(WelcomePage(session_for("org@example.com"), directory).open())
    assert screen.redirect == "dashboard"
    anonymous = run(WelcomePage(session_for(), directory).open())
    assert [b.action for b in anonymous.actions] == ["signup", "login"]


def test_sign_out(session_for, directory):
    session = session_for("org@example.com")
    screen = run(LoginPage(session, directory).sign_out())
    assert screen.redirect == "welcome"
    assert not session.is_authenticated


def test_sign_up_with_organization_lands_on_dashboard(session_for, directory):
    screen = run(
        SignUpPage(session_for(), directory).submit(
            full_name="Nina New",
            email="nina@example.com",
            password=PASSWORD,
            confirm_password=PASSWORD,
            organization_name="Clay Studio",
        )
    )
    assert screen.notice == "Welcome, Nina New!"
    assert screen.redirect == "dashboard"


def test_sign_up_password_mismatch(session_for, directory):
    screen = run(
        SignUpPage(session_for(), directory).submit(
            full_name="Nina New",
            email="nina@example.com",
            password=PASSWORD,
            confirm_password="Different1!",
        )
    )
    assert screen.field_errors == {"confirm_password": "Passwords do not match"}
    fields = {f.name: f for f in screen.fields}
    assert fields["confirm_password"].error == "Passwords do not match"
    assert fields["email"].value == "nina@example.com"


def test_sign_up_awaiting_confirmation(store, directory):
    session = SessionStore(FakeAuthProvider(confirm_email=True), store)
    screen = run(
        SignUpPage(session, directory).submit(
            full_name="Wai Ting",
            email="wait@example.com",
            password=PASSWORD,
            confirm_password=PASSWORD,
        )
    )
    assert screen.redirect == "login"
    assert screen.notice.startswith("Please check your email")


def test_any_signed_in_user_may_open_personal_info(session_for, directory):
    screen = run(PersonalInfoPage(session_for("pat@example.com"), directory).open())
    assert screen.ok
    values = {f.name: f.value for f in screen.fields}
    assert values["full_name"] == "Pat Person"
    assert values["role"] == "User"


def test_profile_save(session_for, directory, store):
    page = PersonalInfoPage(session_for("org@example.com"), directory)
    screen = run(page.save(full_name="Olli O.", phone="+358401234567"))
    assert screen.notice == "Profile updated successfully."
    values = {f.name: f.value for f in screen.fields}
    assert values["full_name"] == "Olli O."
    assert values["phone"] == "+358401234567"
    assert screen.header.user_name == "Olli O."


def test_profile_save_with_bad_phone(session_for, directory):
    page = PersonalInfoPage(session_for("org@example.com"), directory)
    screen = run(page.save(phone="call me"))
    assert screen.field_errors == {"phone": "Please enter a valid phone number"}
    values = {f.name: f.value for f in screen.fields}
    assert values["phone"] == "call me"


def test_change_password(session_for, directory):
    page = PersonalInfoPage(session_for("org@example.com"), directory)
    mismatch = run(page.change_password("NewSecret1!", "Other1!"))
    assert "confirm_password" in mismatch.field_errors
    done = run(page.change_password("NewSecret1!", "NewSecret1!"))
    assert done.notice == "Password changed successfully."
