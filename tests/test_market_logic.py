"""Tests for the LMSR cost function and prices."""

import math
import unittest

from lmsr_engine.errors import PreconditionViolation
from lmsr_engine.market_logic import (
    cost,
    cost_change,
    max_market_maker_loss,
    price_no,
    price_of,
    price_series,
    price_yes,
    prices,
)
from lmsr_engine.models import Outcome

B = 1_000_000


class TestCostFunction(unittest.TestCase):
    def test_fresh_market_cost_is_b_ln_2(self):
        self.assertAlmostEqual(cost(0, 0, B), B * math.log(2), places=6)

    def test_matches_naive_formula_for_small_values(self):
        naive = 100 * math.log(math.exp(30 / 100) + math.exp(70 / 100))
        self.assertAlmostEqual(cost(30, 70, 100), naive, places=9)

    def test_strictly_increasing_in_each_quantity(self):
        for q in [0, 1_000, 250_000, 5_000_000]:
            self.assertLess(cost(q, 40_000, B), cost(q + 1_000, 40_000, B))
            self.assertLess(cost(40_000, q, B), cost(40_000, q + 1_000, B))

    def test_convex_along_a_trade(self):
        """Second differences of C along the YES axis are non-negative."""
        step = 50_000
        values = [cost(i * step, 300_000, B) for i in range(10)]
        for a, m, c in zip(values, values[1:], values[2:]):
            self.assertGreaterEqual(a + c - 2 * m, -1e-6)

    def test_huge_quantities_do_not_overflow(self):
        """exp(1e6) would overflow without max-subtraction."""
        value = cost(10**12, 0, B)
        self.assertTrue(math.isfinite(value))
        self.assertAlmostEqual(value, 10**12, delta=1.0)

    def test_symmetric_in_its_arguments(self):
        self.assertEqual(cost(123_456, 7_890, B), cost(7_890, 123_456, B))

    def test_rejects_non_positive_liquidity(self):
        for b in [0, -1, -0.5, float("nan"), float("inf")]:
            with self.assertRaises(PreconditionViolation):
                cost(10, 10, b)

    def test_rejects_negative_quantities(self):
        with self.assertRaises(PreconditionViolation):
            cost(-1, 0, B)
        with self.assertRaises(PreconditionViolation):
            cost(0, -1, B)

    def test_rejects_non_numbers(self):
        with self.assertRaises(PreconditionViolation):
            cost("10", 0, B)
        with self.assertRaises(PreconditionViolation):
            cost(True, 0, B)

    def test_rejects_integers_beyond_float_range(self):
        """10**400 has no float value; it must not surface as OverflowError."""
        with self.assertRaises(PreconditionViolation):
            cost(10**400, 0, B)
        with self.assertRaises(PreconditionViolation):
            prices(0, 10**400, B)
        with self.assertRaises(PreconditionViolation):
            cost(0, 0, 10**400)
        with self.assertRaises(PreconditionViolation):
            cost_change("YES", 0, 0, B, 10**400)

    def test_accepts_ledger_sized_integers(self):
        self.assertTrue(math.isfinite(cost(2**128 - 1, 0, B)))

    def test_precondition_is_a_value_error(self):
        with self.assertRaises(ValueError):
            cost(0, 0, 0)


class TestPrices(unittest.TestCase):
    def test_fresh_market_is_neutral(self):
        for b in [1, 100, B, 1e12]:
            self.assertEqual(prices(0, 0, b), (0.5, 0.5))

    def test_known_softmax_values(self):
        """softmax(2.0, 1.0) = (0.7311, 0.2689)."""
        p_yes, p_no = prices(2_000_000, 1_000_000, B)
        self.assertAlmostEqual(p_yes, 0.731058578630, places=9)
        self.assertAlmostEqual(p_no, 0.268941421370, places=9)

    def test_prices_sum_to_one(self):
        for q_yes, q_no, b in [(0, 5, 1), (10**9, 3, 100), (7, 7, 0.5), (123_456, 654_321, B)]:
            p_yes, p_no = prices(q_yes, q_no, b)
            self.assertAlmostEqual(p_yes + p_no, 1.0, delta=1e-9)
            self.assertGreaterEqual(p_yes, 0.0)
            self.assertLessEqual(p_yes, 1.0)
            self.assertGreaterEqual(p_no, 0.0)
            self.assertLessEqual(p_no, 1.0)

    def test_symmetry(self):
        for x, y in [(0, 1), (2_000_000, 1_000_000), (42, 4_200_000)]:
            self.assertAlmostEqual(prices(x, y, B)[0], prices(y, x, B)[1], delta=1e-12)

    def test_extreme_imbalance_saturates(self):
        p_yes, p_no = prices(10**15, 0, B)
        self.assertEqual(p_yes, 1.0)
        self.assertEqual(p_no, 0.0)

    def test_price_helpers_agree(self):
        self.assertEqual(price_yes(3, 9, 10), prices(3, 9, 10)[0])
        self.assertEqual(price_no(3, 9, 10), prices(3, 9, 10)[1])
        self.assertEqual(price_of("yes", 3, 9, 10), price_yes(3, 9, 10))
        self.assertEqual(price_of(Outcome.NO, 3, 9, 10), price_no(3, 9, 10))
        self.assertEqual(price_of(0, 3, 9, 10), price_no(3, 9, 10))

    def test_price_is_derivative_of_cost(self):
        h = 1e-3
        numeric = (cost(500_000 + h, 200_000, B) - cost(500_000 - h, 200_000, B)) / (2 * h)
        self.assertAlmostEqual(numeric, price_yes(500_000, 200_000, B), places=4)

    def test_unknown_outcome(self):
        with self.assertRaises(PreconditionViolation):
            price_of("MAYBE", 1, 1, 1)


class TestCostChange(unittest.TestCase):
    def test_matches_difference_of_costs(self):
        expected = cost(400_000, 100_000, B) - cost(300_000, 100_000, B)
        self.assertAlmostEqual(cost_change("YES", 300_000, 100_000, B, 100_000), expected, places=6)

    def test_sell_is_negative_of_buy(self):
        bought = cost_change("NO", 300_000, 100_000, B, 50_000)
        sold = cost_change("NO", 300_000, 150_000, B, -50_000)
        self.assertAlmostEqual(bought, -sold, places=6)

    def test_no_cancellation_for_large_positions(self):
        """A tiny trade on a huge balanced market costs about half a unit per share."""
        change = cost_change("YES", 10**18, 10**18, B, 2)
        self.assertAlmostEqual(change, 1.0, places=5)

    def test_large_trade_beyond_expm1_range(self):
        change = cost_change("YES", 0, 0, 1.0, 5_000.0)
        self.assertAlmostEqual(change, 5_000.0 - math.log(2), places=6)

    def test_zero_trade(self):
        self.assertEqual(cost_change("YES", 10, 20, 5, 0), 0.0)

    def test_rejects_trade_below_zero(self):
        with self.assertRaises(PreconditionViolation):
            cost_change("YES", 10, 20, 5, -11)


class TestMarketMakerLoss(unittest.TestCase):
    def test_loss_bound(self):
        self.assertAlmostEqual(max_market_maker_loss(B), 693147.180560, places=5)

    def test_rejects_bad_liquidity(self):
        with self.assertRaises(PreconditionViolation):
            max_market_maker_loss(0)


class TestPriceSeries(unittest.TestCase):
    def test_points_in_counter_order(self):
        points = price_series([(20, 2_000_000, 1_000_000), (10, 0, 0)], B)
        self.assertEqual([p.counter for p in points], [10, 20])
        self.assertEqual(points[0].yes_price, 0.5)
        self.assertAlmostEqual(points[1].yes_price, 0.731058578630, places=9)
        self.assertAlmostEqual(points[1].yes_price + points[1].no_price, 1.0, delta=1e-12)

    def test_empty(self):
        self.assertEqual(price_series([], B), [])


if __name__ == "__main__":
    unittest.main()
