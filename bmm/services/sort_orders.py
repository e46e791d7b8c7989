from __future__ import annotations


def _current_order(item) -> int:
    if isinstance(item, dict):
        value = item.get("sort_order")
    else:
        value = getattr(item, "sort_order", None)
    return int(value or 0)


def _item_id(item) -> int:
    return item["id"] if isinstance(item, dict) else item.id


def reconcile_sort_orders(displayed, has_filter: bool) -> list[dict]:
    """Compute ``{"id", "order"}`` writes for a list reordered by the user.

    ``displayed`` is the list in its new visual order, top first; each item
    exposes ``id`` and its current ``sort_order``. Higher orders sort first.

    Without a filter the whole list is visible, so every item is lifted above
    the current maximum. With a filter only the visible subset moved: its
    existing orders are reused as a pool so rows outside the view keep their
    relative position, and only changed rows are written.
    """
    items = list(displayed)
    if not items:
        return []
    count = len(items)
    orders = [_current_order(item) for item in items]

    if not has_filter:
        base = max(0, *orders) + count
        return [
            {"id": _item_id(item), "order": base - index}
            for index, item in enumerate(items)
        ]

    pool = sorted(orders, reverse=True)
    if all(value == pool[0] for value in pool):
        targets = [pool[0] + (count - index) for index in range(count)]
    else:
        targets = pool

    return [
        {"id": _item_id(item), "order": target}
        for item, target, current in zip(items, targets, orders)
        if target != current
    ]
