import unittest
from typing import List

from solders.keypair import Keypair

from helpers import QUOTE_MINT, unsigned_transfer

from condarb.data.market_client import ApiError
from condarb.errors import SubmissionError
from condarb.execution.submitter import ApiTransactionSubmitter
from condarb.pricing.amm import UnsignedSwap


class StubSwapApi:
    def __init__(self, payer: Keypair, route_minimum: int = 0, reject_execute: bool = False) -> None:
        self.payer = payer
        self.route_minimum = route_minimum
        self.reject_execute = reject_execute
        self.calls: List[tuple] = []

    def fetch_spot_route_minimum(self, market_id, input_mint, output_mint, amount_in, slippage_bps) -> int:
        self.calls.append(("spot_quote", amount_in, slippage_bps))
        return self.route_minimum

    def build_spot_swap(self, market_id, user, input_mint, output_mint, amount_in, slippage_bps) -> str:
        self.calls.append(("build_spot", amount_in))
        return unsigned_transfer(self.payer)

    def execute_spot_swap(self, market_id, transaction) -> str:
        self.calls.append(("execute_spot",))
        if self.reject_execute:
            raise ApiError("slippage exceeded")
        return "spot-sig"

    def build_conditional_swap(self, market_id, leg_index, user, is_base_to_quote, amount_in, slippage_bps) -> str:
        self.calls.append(("build_leg", leg_index, is_base_to_quote))
        return unsigned_transfer(self.payer)

    def execute_conditional_swap(
        self, market_id, leg_index, user, is_base_to_quote, amount_in, transaction, amount_out=None
    ) -> str:
        self.calls.append(("execute_leg", leg_index, amount_out))
        return "leg-sig"


def spot_swap(minimum_amount_out: int, leg_index=None) -> UnsignedSwap:
    return UnsignedSwap(
        pool="spot-pool" if leg_index is None else f"leg-pool-{leg_index}",
        leg_index=leg_index,
        payer="owner",
        input_mint=QUOTE_MINT,
        output_mint="BaseMint",
        is_base_to_quote=False,
        amount_in=1_000,
        minimum_amount_out=minimum_amount_out,
        expected_amount_out=1_000,
        slippage_bps=100,
    )


class ApiTransactionSubmitterTest(unittest.TestCase):
    def setUp(self) -> None:
        self.keypair = Keypair()

    def test_spot_swap_within_pool_minimum(self) -> None:
        api = StubSwapApi(self.keypair, route_minimum=995)
        receipt = ApiTransactionSubmitter(api, self.keypair).submit_swap(7, spot_swap(990))

        self.assertEqual("spot-sig", receipt.signature)
        self.assertIsNone(receipt.received_amount)
        self.assertEqual(["spot_quote", "build_spot", "execute_spot"], [call[0] for call in api.calls])

    def test_spot_route_below_pool_minimum_is_not_submitted(self) -> None:
        api = StubSwapApi(self.keypair, route_minimum=900)
        with self.assertRaises(SubmissionError) as ctx:
            ApiTransactionSubmitter(api, self.keypair).submit_swap(7, spot_swap(990))

        self.assertIn("below the pool quote minimum 990", str(ctx.exception))
        self.assertEqual([("spot_quote", 1_000, 100)], api.calls)

    def test_conditional_swap_skips_route_check(self) -> None:
        api = StubSwapApi(self.keypair)
        receipt = ApiTransactionSubmitter(api, self.keypair).submit_swap(7, spot_swap(990, leg_index=1))

        self.assertEqual("leg-sig", receipt.signature)
        self.assertEqual([("build_leg", 1, False), ("execute_leg", 1, 1_000)], api.calls)

    def test_api_rejection_is_a_submission_error(self) -> None:
        api = StubSwapApi(self.keypair, route_minimum=995, reject_execute=True)
        with self.assertRaises(SubmissionError):
            ApiTransactionSubmitter(api, self.keypair).submit_swap(7, spot_swap(990))


if __name__ == "__main__":
    unittest.main()
