import unittest
from decimal import Decimal

from helpers import BASE_MINT, CLOCK, QUOTE_MINT, StubPoolReader, make_leg, pool_payload

from condarb.data.models import AssetClass, ClockContext, LegState
from condarb.errors import PoolUnavailable, SimulationError
from condarb.pricing.amm import AMMAdapter, FeeSchedule


class AMMAdapterTest(unittest.TestCase):
    def setUp(self) -> None:
        self.reader = StubPoolReader()
        self.amm = AMMAdapter(self.reader, default_fee_bps=0)

    def _state(self, base_reserve: int, quote_reserve: int, fee_bps: int = 0, flipped: bool = False):
        self.reader.pools["p"] = pool_payload(BASE_MINT, QUOTE_MINT, base_reserve, quote_reserve, fee_bps, flipped)
        return self.amm.fetch_state("p", BASE_MINT, QUOTE_MINT, 9, 9)

    def test_price_is_quote_per_base(self) -> None:
        state = self._state(1_000_000, 2_500_000)
        self.assertEqual(Decimal("2.5"), self.amm.price(state))

    def test_orientation_is_normalized(self) -> None:
        straight = self._state(1_000_000, 2_500_000)
        flipped = self._state(1_000_000, 2_500_000, flipped=True)
        self.assertEqual(straight.base_reserve, flipped.base_reserve)
        self.assertEqual(straight.quote_reserve, flipped.quote_reserve)
        self.assertEqual(self.amm.price(straight), self.amm.price(flipped))

    def test_price_accounts_for_decimals(self) -> None:
        self.reader.pools["p"] = pool_payload(BASE_MINT, QUOTE_MINT, 1_000 * 10**6, 2_000 * 10**9)
        state = self.amm.fetch_state("p", BASE_MINT, QUOTE_MINT, 6, 9)
        self.assertEqual(Decimal(2), self.amm.price(state))

    def test_constant_product_quote(self) -> None:
        state = self._state(1_000_000, 2_000_000)
        quote = self.amm.quote(state, 10_000, AssetClass.BASE, 100, CLOCK)

        self.assertEqual(19_801, quote.output_amount)
        self.assertEqual(19_602, quote.min_output_amount)
        self.assertEqual(0, quote.fee_amount)

    def test_fee_taken_from_input(self) -> None:
        state = self._state(1_000_000, 2_000_000, fee_bps=50)
        quote = self.amm.quote(state, 10_000, AssetClass.BASE, 0, CLOCK)

        self.assertEqual(50, quote.fee_amount)
        self.assertEqual(2_000_000 * 9_950 // (1_000_000 + 9_950), quote.output_amount)
        self.assertEqual(quote.output_amount, quote.min_output_amount)

    def test_quote_side_buys_base(self) -> None:
        state = self._state(1_000_000, 2_000_000)
        quote = self.amm.quote(state, 20_000, AssetClass.QUOTE, 0, CLOCK)
        self.assertEqual(1_000_000 * 20_000 // 2_020_000, quote.output_amount)

    def test_invalid_quotes_raise_simulation_error(self) -> None:
        state = self._state(1_000_000, 2_000_000)
        with self.assertRaises(SimulationError):
            self.amm.quote(state, 0, AssetClass.BASE, 0, CLOCK)

        empty = self._state(0, 2_000_000)
        with self.assertRaises(SimulationError):
            self.amm.quote(empty, 100, AssetClass.BASE, 0, CLOCK)

        shallow = self._state(1_000_000_000, 1)
        with self.assertRaises(SimulationError):
            self.amm.quote(shallow, 1, AssetClass.BASE, 0, CLOCK)

    def test_malformed_payloads_raise_pool_unavailable(self) -> None:
        self.reader.pools["p"] = {"tokenMints": {"base": BASE_MINT, "quote": QUOTE_MINT}}
        with self.assertRaises(PoolUnavailable):
            self.amm.fetch_state("p", BASE_MINT, QUOTE_MINT, 9, 9)

        self.reader.pools["p"] = pool_payload("other", QUOTE_MINT, 1, 1)
        with self.assertRaises(PoolUnavailable):
            self.amm.fetch_state("p", BASE_MINT, QUOTE_MINT, 9, 9)

        with self.assertRaises(PoolUnavailable):
            self.amm.fetch_state("missing", BASE_MINT, QUOTE_MINT, 9, 9)

    def test_uninitialized_leg_has_no_state(self) -> None:
        with self.assertRaises(PoolUnavailable):
            self.amm.fetch_leg_state(make_leg(0, state=LegState.UNINITIALIZED, pool=None))

    def test_default_fee_applies_when_payload_has_none(self) -> None:
        amm = AMMAdapter(self.reader, default_fee_bps=30)
        self.reader.pools["p"] = {
            "reserves": {"base": "100", "quote": "100"},
            "tokenMints": {"base": BASE_MINT, "quote": QUOTE_MINT},
        }
        state = amm.fetch_state("p", BASE_MINT, QUOTE_MINT, 9, 9)
        self.assertEqual(30, state.fee.cliff_fee_bps)

    def test_build_swap_describes_quote(self) -> None:
        state = self._state(1_000_000, 2_000_000)
        quote = self.amm.quote(state, 10_000, AssetClass.BASE, 100, CLOCK)
        swap = self.amm.build_swap(state, quote, AssetClass.BASE, "payer", 100, leg_index=2)

        self.assertEqual(BASE_MINT, swap.input_mint)
        self.assertEqual(QUOTE_MINT, swap.output_mint)
        self.assertTrue(swap.is_base_to_quote)
        self.assertEqual(10_000, swap.amount_in)
        self.assertEqual(quote.min_output_amount, swap.minimum_amount_out)
        self.assertEqual(2, swap.leg_index)


class FeeScheduleTest(unittest.TestCase):
    def test_linear_decay(self) -> None:
        schedule = FeeSchedule(
            cliff_fee_bps=100, reduction_factor_bps=10, period_seconds=60, number_of_periods=5, activation_time=1_000
        )
        self.assertEqual(100, schedule.fee_bps_at(ClockContext(slot=1, block_time=999)))
        self.assertEqual(80, schedule.fee_bps_at(ClockContext(slot=1, block_time=1_130)))
        self.assertEqual(50, schedule.fee_bps_at(ClockContext(slot=1, block_time=100_000)))

    def test_exponential_decay(self) -> None:
        schedule = FeeSchedule(
            cliff_fee_bps=100,
            mode="exponential",
            reduction_factor_bps=1_000,
            period_seconds=60,
            number_of_periods=10,
            activation_time=0,
        )
        self.assertEqual(81, schedule.fee_bps_at(ClockContext(slot=1, block_time=120)))

    def test_quotes_depend_on_clock(self) -> None:
        reader = StubPoolReader()
        reader.pools["p"] = {
            "reserves": {"base": "1000000", "quote": "1000000"},
            "tokenMints": {"base": BASE_MINT, "quote": QUOTE_MINT},
            "feeSchedule": {
                "cliffFeeBps": 500,
                "reductionFactorBps": 100,
                "periodSeconds": 10,
                "numberOfPeriods": 4,
                "activationTime": 0,
            },
        }
        amm = AMMAdapter(reader)
        state = amm.fetch_state("p", BASE_MINT, QUOTE_MINT, 9, 9)

        early = amm.quote(state, 10_000, AssetClass.BASE, 0, ClockContext(slot=1, block_time=0))
        late = amm.quote(state, 10_000, AssetClass.BASE, 0, ClockContext(slot=2, block_time=1_000))
        self.assertEqual(500, early.fee_bps)
        self.assertEqual(100, late.fee_bps)
        self.assertGreater(late.output_amount, early.output_amount)


if __name__ == "__main__":
    unittest.main()
