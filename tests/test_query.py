# tests/test_query.py

from datetime import timedelta

import pytest

from conftest import future
from todo_api.core.errors import ValidationError
from todo_api.models.task import TaskStatus


@pytest.fixture()
def seeded(store, owner, other_owner):
    """Five tasks for the owner: three completed, two pending, plus one foreign task."""
    fields = [
        {"title": "Buy milk", "priority": "low", "tags": ["home"], "category": "errands", "due_date": future(1)},
        {"title": "Pay rent", "priority": "high", "tags": ["home", "money"], "due_date": future(5)},
        {"title": "Write report", "description": "Q3 MILK sales", "priority": "medium", "tags": ["work"]},
        {"title": "Call bank", "priority": "high", "tags": ["money"], "category": "errands", "due_date": future(10)},
        {"title": "100% done_item", "priority": "low"},
    ]
    tasks = [store.create(owner.id, data) for data in fields]
    store.batch_update_status(owner.id, [tasks[0].id, tasks[2].id, tasks[4].id], "completed")
    store.create(other_owner.id, {"title": "Buy milk too", "tags": ["home"]})
    return tasks


def _titles(page):
    return [item.title for item in page.items]


def test_completed_filter_pages_one_at_a_time(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"status": "completed", "page": 1, "limit": 1})

    assert page.total == 3
    assert len(page.items) == 1
    assert page.total_pages == 3
    assert page.has_more is True


def test_results_never_include_other_owners(store, owner, other_owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"limit": 50})
    theirs = store.list_tasks(other_owner.id, {})

    assert page.total == 5
    assert all(item.user_id == owner.id for item in page.items)
    assert _titles(theirs) == ["Buy milk too"]


def test_search_matches_title_or_description_case_insensitively(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"search": "milk", "sort_by": "title", "sort_order": "asc"})

    assert _titles(page) == ["Buy milk", "Write report"]


def test_search_treats_wildcards_literally(store, owner, seeded) -> None:
    assert _titles(store.list_tasks(owner.id, {"search": "%"})) == ["100% done_item"]
    assert _titles(store.list_tasks(owner.id, {"search": "_"})) == ["100% done_item"]


def test_tags_match_any(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"tags": ["money", "work"], "sort_by": "title", "sort_order": "asc"})

    assert _titles(page) == ["Call bank", "Pay rent", "Write report"]


def test_priority_and_category_filters(store, owner, seeded) -> None:
    assert _titles(store.list_tasks(owner.id, {"priority": "high", "category": "errands"})) == ["Call bank"]


def test_due_date_range_is_inclusive(store, owner, seeded) -> None:
    rent_due = seeded[1].due_date

    page = store.list_tasks(
        owner.id,
        {"start_date": rent_due, "end_date": rent_due + timedelta(days=6), "sort_by": "dueDate", "sort_order": "asc"},
    )

    assert _titles(page) == ["Pay rent", "Call bank"]


def test_status_and_tags_combine(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"status": TaskStatus.pending, "tags": ["home"]})

    assert _titles(page) == ["Pay rent"]


def test_sort_by_priority_uses_rank(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"sort_by": "priority", "sort_order": "desc", "limit": 50})

    priorities = [item.priority.value for item in page.items]
    assert priorities == ["high", "high", "medium", "low", "low"]


def test_equal_sort_keys_break_ties_by_id(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"sort_by": "priority", "sort_order": "asc", "limit": 50})

    lows = [item.id for item in page.items if item.priority.value == "low"]
    highs = [item.id for item in page.items if item.priority.value == "high"]
    assert lows == sorted(lows)
    assert highs == sorted(highs)


def test_pages_concatenate_to_total_without_duplicates(store, owner, seeded) -> None:
    first = store.list_tasks(owner.id, {"limit": 2, "sort_by": "priority"})
    seen = []
    for page_number in range(1, first.total_pages + 1):
        page = store.list_tasks(owner.id, {"limit": 2, "page": page_number, "sort_by": "priority"})
        seen.extend(item.id for item in page.items)
        assert page.has_more == (page_number < first.total_pages)

    assert len(seen) == first.total == 5
    assert len(set(seen)) == 5


def test_no_matches_is_empty_page(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"search": "nothing like this"})

    assert page.items == []
    assert page.total == 0
    assert page.total_pages == 0
    assert page.has_more is False


def test_page_past_the_end_is_empty(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {"page": 9, "limit": 2})

    assert page.items == []
    assert page.total == 5
    assert page.has_more is False


def test_default_sort_is_newest_first(store, owner, seeded) -> None:
    page = store.list_tasks(owner.id, {})

    created = [item.created_at for item in page.items]
    assert created == sorted(created, reverse=True)


@pytest.mark.parametrize("sort_by", ["id", "user_id", "userId"])
def test_sort_by_identifier_fields(store, owner, seeded, sort_by) -> None:
    page = store.list_tasks(owner.id, {"sort_by": sort_by, "sort_order": "asc", "limit": 50})

    ids = [item.id for item in page.items]
    assert len(ids) == 5
    # user_id is constant within one owner, so the id tie-break decides
    assert ids == sorted(ids)


@pytest.mark.parametrize(
    "query",
    [
        {"page": 0},
        {"limit": 0},
        {"limit": 51},
        {"sort_by": "password_hash"},
        {"sort_order": "sideways"},
        {"status": "done"},
        {"start_date": future(5), "end_date": future(1)},
    ],
)
def test_invalid_queries_are_rejected(store, owner, query) -> None:
    with pytest.raises(ValidationError):
        store.list_tasks(owner.id, query)
