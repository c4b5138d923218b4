import pytest

from cartstore.query import build_filter, build_sort, paginate_records, to_positive_int


@pytest.mark.parametrize("raw,expected", [
    (None, {}),
    ("", {}),
    ("   ", {}),
    ("status:true", {"status": True}),
    ("Status : FALSE", {"status": False}),
    ("true", {"status": True}),
    ("False", {"status": False}),
    ("electronics", {"category": "electronics"}),
    ("status:maybe", {"category": "status:maybe"}),
])
def test_build_filter(raw, expected):
    assert build_filter(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("asc", ("price", 1)),
    ("DESC", ("price", -1)),
    ("price", None),
    (None, None),
])
def test_build_sort(raw, expected):
    assert build_sort(raw) == expected


@pytest.mark.parametrize("raw,expected", [("3", 3), (4, 4), ("0", 7), ("-2", 7), ("x", 7), (None, 7), (True, 7)])
def test_to_positive_int(raw, expected):
    assert to_positive_int(raw, 7) == expected


def test_empty_collection_is_one_empty_page():
    page = paginate_records([], {}, None, 1, 10)
    assert page.docs == []
    assert page.total_pages == 1
    assert not page.has_prev_page and not page.has_next_page


def test_page_past_the_end():
    records = [{"id": str(i), "price": i} for i in range(3)]
    page = paginate_records(records, {}, ("price", -1), 4, 2)
    assert page.docs == []
    assert page.page == 4
    assert page.total_pages == 2
    assert page.prev_page == 3
    assert page.next_page is None
