from restaurant_reports.services.grouping import fold_groups, percentage_of, rank, round_half_up


def test_fold_groups_keeps_first_seen_order_and_skips_missing_keys() -> None:
    records = [
        {"kind": "b", "value": 1},
        {"kind": "a", "value": 2},
        {"kind": None, "value": 100},
        {"kind": "b", "value": 3},
    ]

    totals = fold_groups(records, lambda row: row["kind"], lambda _key, _row: 0, lambda acc, row: acc + row["value"])

    assert list(totals.items()) == [("b", 4), ("a", 2)]


def test_rank_is_stable_for_ties() -> None:
    rows = [("first", 5), ("second", 7), ("third", 5), ("fourth", 7)]

    ranked = rank(rows, key=lambda row: row[1])

    assert [name for name, _ in ranked] == ["second", "fourth", "first", "third"]


def test_rank_ascending_with_limit() -> None:
    assert rank([3, 1, 2], key=lambda value: value, limit=2, descending=False) == [1, 2]


def test_percentage_of_defaults_to_zero_without_total() -> None:
    assert percentage_of(10, 0) == 0
    assert percentage_of(0, 0) == 0


def test_percentage_rounds_half_up() -> None:
    assert percentage_of(1, 8) == 13
    assert round_half_up(88.75) == 89
    assert round_half_up(2.5) == 3
