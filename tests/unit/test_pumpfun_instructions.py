"""
Instruction Encoder Unit Tests
==============================
Byte layouts and account order for bonding-curve buy/sell.
"""

import struct

import pytest


@pytest.fixture
def pdas(mint, sender):
    from src.pumpfun.pda import derive_bonding_curve_pdas
    return derive_bonding_curve_pdas(mint, sender.pubkey())


class TestArgsSerialization:
    """Fixed binary layouts."""

    def test_buy_layout(self):
        from src.pumpfun.instructions import BuyArgs
        from src.pumpfun.constants import BUY_DISCRIMINATOR

        data = BuyArgs(amount=100_000_000, max_sol_cost=1_100_000).serialize()

        assert len(data) == 25
        assert data[:8] == BUY_DISCRIMINATOR
        assert struct.unpack_from("<Q", data, 8)[0] == 100_000_000
        assert struct.unpack_from("<Q", data, 16)[0] == 1_100_000
        assert data[24] == 1

    def test_buy_fixed_vector(self):
        from src.pumpfun.instructions import BuyArgs

        data = BuyArgs(amount=1, max_sol_cost=2, track_volume=False).serialize()
        assert data.hex() == (
            "66063d1201daebea"
            "0100000000000000"
            "0200000000000000"
            "00"
        )

    def test_sell_layout(self):
        from src.pumpfun.instructions import SellArgs
        from src.pumpfun.constants import SELL_DISCRIMINATOR

        data = SellArgs(amount=5_000, min_sol_output=1_000).serialize()

        assert len(data) == 24
        assert data[:8] == SELL_DISCRIMINATOR
        assert data.hex() == "33e685a4017f83ad" + "8813000000000000" + "e803000000000000"

    def test_u64_bounds(self):
        from src.pumpfun.instructions import SellArgs, U64_MAX
        from src.shared.execution.errors import InstructionEncodingError

        assert len(SellArgs(amount=U64_MAX, min_sol_output=0).serialize()) == 24

        with pytest.raises(InstructionEncodingError):
            SellArgs(amount=U64_MAX + 1, min_sol_output=0).serialize()
        with pytest.raises(InstructionEncodingError):
            SellArgs(amount=-1, min_sol_output=0).serialize()

    def test_non_integer_rejected(self):
        from src.pumpfun.instructions import BuyArgs
        from src.shared.execution.errors import InstructionEncodingError

        with pytest.raises(InstructionEncodingError, match="integer"):
            BuyArgs(amount=1.5, max_sol_cost=1).serialize()


class TestMaxSolCost:
    """Slippage ceiling arithmetic."""

    def test_ten_percent(self):
        from src.pumpfun.instructions import max_sol_cost

        assert max_sol_cost(1_000_000, 1000) == 1_100_000

    def test_floor_division(self):
        from src.pumpfun.instructions import max_sol_cost

        assert max_sol_cost(3, 1000) == 3  # 3.3 floors to 3

    def test_zero_slippage(self):
        from src.pumpfun.instructions import max_sol_cost

        assert max_sol_cost(123_456, 0) == 123_456

    def test_negative_slippage(self):
        from src.pumpfun.instructions import max_sol_cost
        from src.shared.execution.errors import InstructionEncodingError

        with pytest.raises(InstructionEncodingError):
            max_sol_cost(1_000, -1)


class TestBuildBuy:
    """Buy instruction accounts."""

    def test_account_order(self, mint, sender, pdas):
        from src.pumpfun.instructions import build_buy_instruction
        from src.pumpfun.constants import (
            PUMP_PROGRAM_ID, FEE_PROGRAM_ID, FEE_RECIPIENT, SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID,
        )

        user = sender.pubkey()
        ix = build_buy_instruction(user, mint, 1_000_000, pdas, include_fee_accounts=True)
        keys = [meta.pubkey for meta in ix.accounts]

        assert ix.program_id == PUMP_PROGRAM_ID
        assert keys == [
            pdas.global_account,
            FEE_RECIPIENT,
            mint,
            pdas.bonding_curve,
            pdas.associated_bonding_curve,
            pdas.associated_user,
            user,
            SYSTEM_PROGRAM_ID,
            TOKEN_PROGRAM_ID,
            pdas.creator_vault,
            pdas.event_authority,
            PUMP_PROGRAM_ID,
            pdas.global_volume_accumulator,
            pdas.user_volume_accumulator,
            pdas.fee_config,
            FEE_PROGRAM_ID,
        ]

    def test_only_user_signs(self, mint, sender, pdas):
        from src.pumpfun.instructions import build_buy_instruction

        ix = build_buy_instruction(sender.pubkey(), mint, 1_000_000, pdas)
        signers = [meta.pubkey for meta in ix.accounts if meta.is_signer]
        assert signers == [sender.pubkey()]

    def test_without_fee_accounts(self, mint, sender, pdas):
        from src.pumpfun.instructions import build_buy_instruction

        ix = build_buy_instruction(sender.pubkey(), mint, 1_000_000, pdas, include_fee_accounts=False)
        assert len(ix.accounts) == 14

    def test_payload(self, mint, sender, pdas):
        from src.pumpfun.instructions import build_buy_instruction

        ix = build_buy_instruction(
            sender.pubkey(), mint, 2_000_000, pdas, slippage_bps=500, expected_token_amount=42
        )
        data = bytes(ix.data)
        assert struct.unpack_from("<QQ", data, 8) == (42, 2_100_000)


class TestBuildSell:
    """Sell instruction accounts."""

    def test_account_order(self, mint, sender, pdas):
        from src.pumpfun.instructions import build_sell_instruction
        from src.pumpfun.constants import (
            PUMP_PROGRAM_ID, FEE_PROGRAM_ID, FEE_RECIPIENT, SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID,
        )

        user = sender.pubkey()
        ix = build_sell_instruction(user, mint, 5_000, 1_000, pdas, include_fee_accounts=True)
        keys = [meta.pubkey for meta in ix.accounts]

        assert keys == [
            pdas.global_account,
            FEE_RECIPIENT,
            mint,
            pdas.bonding_curve,
            pdas.associated_bonding_curve,
            pdas.associated_user,
            user,
            SYSTEM_PROGRAM_ID,
            pdas.creator_vault,
            TOKEN_PROGRAM_ID,
            pdas.event_authority,
            PUMP_PROGRAM_ID,
            pdas.fee_config,
            FEE_PROGRAM_ID,
        ]

    def test_without_fee_accounts(self, mint, sender, pdas):
        from src.pumpfun.instructions import build_sell_instruction

        ix = build_sell_instruction(sender.pubkey(), mint, 5_000, 1_000, pdas, include_fee_accounts=False)
        assert len(ix.accounts) == 12
        assert len(bytes(ix.data)) == 24
