# Overview: Pytest coverage for the moving-average cost basis calculation.

from gamestock.services.cost_basis import next_cost_basis


def test_blends_weighted_average():
    # 5 @ 1000 + 5 @ 1200 -> 1100
    assert next_cost_basis(5, 1000, 5, 1200) == 1100


def test_empty_stock_adopts_incoming_cost():
    assert next_cost_basis(0, 1000, 3, 1500) == 1500


def test_zero_cost_basis_adopts_incoming_cost():
    assert next_cost_basis(7, 0, 3, 1500) == 1500


def test_rounds_half_up_to_nearest_cent():
    # (100*1 + 101*1) / 2 = 100.5 -> 101
    assert next_cost_basis(1, 100, 1, 101) == 101
    # (100*2 + 101*1) / 3 = 100.33 -> 100
    assert next_cost_basis(2, 100, 1, 101) == 100


def test_result_lies_between_old_and_incoming_cost():
    result = next_cost_basis(10, 1000, 5, 1600)
    assert result == 1200
    assert 1000 <= result <= 1600
