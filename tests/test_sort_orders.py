from types import SimpleNamespace

from bmm.services.sort_orders import reconcile_sort_orders


def _row(bookmark_id, order):
    return {"id": bookmark_id, "sort_order": order}


def test_unfiltered_drag_lifts_every_row_above_current_max():
    displayed = [_row(2, 5), _row(1, 10)]

    orders = reconcile_sort_orders(displayed, has_filter=False)

    assert orders == [{"id": 2, "order": 12}, {"id": 1, "order": 11}]


def test_unfiltered_list_already_in_order_keeps_relative_order():
    displayed = [_row(3, 30), _row(2, 20), _row(1, 10)]

    orders = reconcile_sort_orders(displayed, has_filter=False)

    new_order = {item["id"]: item["order"] for item in orders}
    ranked = sorted(new_order, key=lambda bookmark_id: new_order[bookmark_id], reverse=True)
    assert ranked == [3, 2, 1]
    assert len(set(new_order.values())) == 3


def test_unfiltered_missing_orders_count_as_zero():
    displayed = [_row(1, None), _row(2, None)]

    assert reconcile_sort_orders(displayed, has_filter=False) == [
        {"id": 1, "order": 2},
        {"id": 2, "order": 1},
    ]


def test_filtered_drag_reuses_existing_orders_and_writes_only_changes():
    # visible subset of a larger list: rows 7, 4 and 9 with orders 70, 40, 90
    # the user dragged row 4 to the top
    displayed = [_row(4, 40), _row(9, 90), _row(7, 70)]

    orders = reconcile_sort_orders(displayed, has_filter=True)

    assert orders == [
        {"id": 4, "order": 90},
        {"id": 9, "order": 70},
        {"id": 7, "order": 40},
    ]


def test_filtered_unchanged_rows_are_not_written():
    displayed = [_row(9, 90), _row(4, 40), _row(7, 70)]

    orders = reconcile_sort_orders(displayed, has_filter=True)

    assert orders == [{"id": 4, "order": 70}, {"id": 7, "order": 40}]


def test_filtered_identical_orders_get_distinct_values_from_shared_anchor():
    displayed = [_row(1, 5), _row(2, 5), _row(3, 5)]

    orders = reconcile_sort_orders(displayed, has_filter=True)

    assert orders == [
        {"id": 1, "order": 8},
        {"id": 2, "order": 7},
        {"id": 3, "order": 6},
    ]


def test_accepts_objects_and_empty_lists():
    displayed = [SimpleNamespace(id=1, sort_order=1), SimpleNamespace(id=2, sort_order=2)]

    assert reconcile_sort_orders(displayed, has_filter=True) == [
        {"id": 1, "order": 2},
        {"id": 2, "order": 1},
    ]
    assert reconcile_sort_orders([], has_filter=False) == []
