from hobbly_bot.core.models import Page, Role
from hobbly_bot.ui.components import (
    Column,
    Header,
    Input,
    Pagination,
    Sidebar,
    Table,
    get_nested,
)


ROWS = [
    {"id": "1", "title": "Yoga", "category": {"name": "Sport"}, "price": 0},
    {"id": "2", "title": "Pottery", "category": None, "price": 15},
]


def test_get_nested_walks_dicts_and_attributes():
    class Obj:
        inner = {"value": 3}

    assert get_nested({"a": {"b": 1}}, "a.b") == 1
    assert get_nested(Obj(), "inner.value") == 3
    assert get_nested({"a": None}, "a.b") is None


def test_table_renders_cells_with_fallback():
    table = Table(
        [
            Column("title", "Title"),
            Column("category.name", "Category"),
            Column("price", "Price", render=lambda v, _r: "Free" if not v else f"{v} EUR", align="right"),
        ],
        ROWS,
    )
    assert table.rows() == [["Yoga", "Sport", "Free"], ["Pottery", "-", "15 EUR"]]
    assert table.keys() == ["1", "2"]
    lines = table.render().splitlines()
    assert lines[0].startswith("Title")
    assert lines[3].endswith("15 EUR")


def test_table_loading_and_empty_states():
    columns = [Column("title", "Title")]
    assert Table(columns, ROWS, loading=True).render() == "Loading..."
    empty = Table(columns, [], empty_message="No activities found")
    assert empty.is_empty
    assert empty.render() == "No activities found"


def test_table_clips_wide_cells():
    table = Table([Column("title", "Title", width=5)], [{"id": "1", "title": "Very long title"}])
    assert table.render().splitlines()[2] == "Very…"


def test_pagination_bounds():
    first = Pagination(current=1, total_pages=10)
    assert first.pages == [1, 2, 3, 4, 5]
    assert first.previous_disabled and not first.next_disabled
    last = Pagination(current=10, total_pages=10)
    assert last.pages == [6, 7, 8, 9, 10]
    assert last.next_disabled and not last.previous_disabled
    assert "[10]" in last.render()


def test_pagination_from_page():
    page = Page[int].build([1, 2], page=2, limit=2, total=6)
    pagination = Pagination.for_page(page)
    assert (pagination.current, pagination.total_pages) == (2, 3)
    assert pagination.pages == [1, 2, 3]


def test_sidebar_filters_by_role():
    user_items = [m.id for m in Sidebar(Role.USER).items()]
    organizer_items = [m.id for m in Sidebar(Role.ORGANIZER).items()]
    admin_items = [m.id for m in Sidebar(Role.ADMIN).items()]
    assert user_items == ["personal"]
    assert organizer_items == ["dashboard", "activities", "personal", "trash"]
    assert admin_items == ["dashboard", "activities", "users", "personal", "trash"]


def test_sidebar_marks_active_route():
    text = Sidebar(Role.ORGANIZER, active="activities").render()
    assert "▸ 📅 Activities" in text


def test_header_and_input():
    assert Header("Aino", "Hobbly Oy").render() == "Aino · Hobbly Oy"
    field = Input("Email", "email", "a@b.fi", required=True, error="Invalid")
    assert field.render() == "Email*: a@b.fi\n  ⚠ Invalid"
    assert Input("Password", "password", "secret", secret=True).display_value == "••••••••"
