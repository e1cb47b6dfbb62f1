"""
InstructionFactory Unit Tests
=============================
Operation -> instruction dispatch.

Bonding-curve builds are pure; AMM builds go through MockAmmSdk and
creator lookups through MockRpcClient.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from solders.pubkey import Pubkey


def _op(op_type, params, sender, op_id="op-1"):
    from src.execution.operations import Operation
    return Operation(id=op_id, type=op_type, params=params, sender=sender)


class TestDispatch:
    """One builder per operation type."""

    @pytest.mark.asyncio
    async def test_create_account(self, sender, mint):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, CreateAccountParams
        from src.pumpfun.constants import ASSOCIATED_TOKEN_PROGRAM_ID

        op = _op(OperationType.CREATE_ACCOUNT, CreateAccountParams(mint=mint, owner=sender.pubkey()), sender)
        ixs = await InstructionFactory().build(op, BuildContext())

        assert len(ixs) == 1
        assert ixs[0].program_id == ASSOCIATED_TOKEN_PROGRAM_ID
        assert bytes(ixs[0].data) == bytes([1])

    @pytest.mark.asyncio
    async def test_create_account_with_wsol(self, sender, mint, fee_payer):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, CreateAccountParams
        from src.pumpfun.constants import WSOL_MINT

        params = CreateAccountParams(mint=mint, owner=sender.pubkey(), include_wsol=True)
        ixs = await InstructionFactory().build(
            _op(OperationType.CREATE_ACCOUNT, params, sender),
            BuildContext(fee_payer=fee_payer.pubkey()),
        )

        assert len(ixs) == 2
        assert ixs[1].accounts[3].pubkey == WSOL_MINT
        # fee payer funds the rent
        assert ixs[0].accounts[0].pubkey == fee_payer.pubkey()

    @pytest.mark.asyncio
    async def test_token_transfer_with_account(self, sender, mint, recipient):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, TokenTransferParams
        from src.pumpfun.constants import TOKEN_PROGRAM_ID

        params = TokenTransferParams(recipient=recipient, mint=mint, amount=10, create_account=True)
        ixs = await InstructionFactory().build(_op(OperationType.TRANSFER, params, sender), BuildContext())

        assert len(ixs) == 2
        assert ixs[1].program_id == TOKEN_PROGRAM_ID

    @pytest.mark.asyncio
    async def test_zero_token_transfer_rejected(self, sender, mint, recipient):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, TokenTransferParams
        from src.shared.execution.errors import InstructionBuildError

        params = TokenTransferParams(recipient=recipient, mint=mint, amount=0)
        with pytest.raises(InstructionBuildError, match="greater than 0"):
            await InstructionFactory().build(_op(OperationType.TRANSFER, params, sender), BuildContext())

    @pytest.mark.asyncio
    async def test_sol_transfer_lamports(self, sender, recipient):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, SolTransferParams
        from src.pumpfun.constants import SYSTEM_PROGRAM_ID

        params = SolTransferParams(recipient=recipient, amount=Decimal("0.1"))
        ixs = await InstructionFactory().build(_op(OperationType.SOL_TRANSFER, params, sender), BuildContext())

        assert ixs[0].program_id == SYSTEM_PROGRAM_ID
        # system transfer: u32 tag (2) + u64 lamports
        assert bytes(ixs[0].data)[4:] == (100_000_000).to_bytes(8, "little")

    @pytest.mark.asyncio
    async def test_curve_buy_with_explicit_creator(self, sender, mint, mock_rpc):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, BuyBondingCurveParams
        from src.pumpfun.constants import PUMP_PROGRAM_ID
        from src.pumpfun.pda import creator_vault

        creator = Pubkey.new_unique()
        params = BuyBondingCurveParams(mint=mint, amount=1_000_000, create_account=True, creator=creator)
        ixs = await InstructionFactory().build(
            _op(OperationType.BUY_BONDING_CURVE, params, sender),
            BuildContext(connection=mock_rpc),
        )

        assert len(ixs) == 2
        assert ixs[1].program_id == PUMP_PROGRAM_ID
        assert ixs[1].accounts[9].pubkey == creator_vault(creator)[0]
        assert mock_rpc.account_requests == []

    @pytest.mark.asyncio
    async def test_curve_sell(self, sender, mint):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, SellBondingCurveParams

        params = SellBondingCurveParams(mint=mint, amount=5_000)
        ixs = await InstructionFactory(include_fee_accounts=False).build(
            _op(OperationType.SELL_BONDING_CURVE, params, sender), BuildContext()
        )

        assert len(ixs) == 1
        assert len(ixs[0].accounts) == 12


class TestCreatorResolution:
    """Creator vault keyed on the on-chain creator."""

    def _curve_data(self, creator: Pubkey) -> bytes:
        return bytes(49) + bytes(creator) + bytes(8)

    @pytest.mark.asyncio
    async def test_fetched_and_cached(self, sender, mint, mock_rpc):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, SellBondingCurveParams
        from src.pumpfun.pda import bonding_curve, creator_vault

        creator = Pubkey.new_unique()
        mock_rpc.set_account_data(bonding_curve(mint)[0], self._curve_data(creator))
        factory = InstructionFactory()
        op = _op(OperationType.SELL_BONDING_CURVE, SellBondingCurveParams(mint=mint, amount=1), sender)

        first = await factory.build(op, BuildContext(connection=mock_rpc))
        await factory.build(op, BuildContext(connection=mock_rpc))

        assert first[0].accounts[8].pubkey == creator_vault(creator)[0]
        assert len(mock_rpc.account_requests) == 1
        assert factory.get_stats()["cached_creators"] == 1

    @pytest.mark.asyncio
    async def test_missing_curve_uses_trader(self, sender, mint, mock_rpc):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, SellBondingCurveParams
        from src.pumpfun.pda import creator_vault

        op = _op(OperationType.SELL_BONDING_CURVE, SellBondingCurveParams(mint=mint, amount=1), sender)
        ixs = await InstructionFactory().build(op, BuildContext(connection=mock_rpc))

        assert ixs[0].accounts[8].pubkey == creator_vault(sender.pubkey())[0]


class TestAmmDelegation:
    """AMM builds go through the SDK."""

    @pytest.mark.asyncio
    async def test_buy_amm(self, sender, mint, mock_amm):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, BuyAmmParams
        from src.execution.amm_gateway import TradeDirection

        pool = Pubkey.new_unique()
        params = BuyAmmParams(pool_key=pool, amount=2_000, slippage_bps=150, create_account=True, token_mint=mint)
        ixs = await InstructionFactory().build(_op(OperationType.BUY_AMM, params, sender), BuildContext(amm_sdk=mock_amm))

        assert len(ixs) == 2
        assert mock_amm.state_calls == [(pool, sender.pubkey())]
        call = mock_amm.build_calls[0]
        assert call["amount"] == 2_000
        assert call["slippage_bps"] == 150
        assert call["direction"] == TradeDirection.BUY

    @pytest.mark.asyncio
    async def test_sell_amm(self, sender, mock_amm):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, SellAmmParams
        from src.execution.amm_gateway import TradeDirection

        params = SellAmmParams(pool_key=Pubkey.new_unique(), amount=7)
        await InstructionFactory().build(_op(OperationType.SELL_AMM, params, sender), BuildContext(amm_sdk=mock_amm))

        assert mock_amm.build_calls[0]["direction"] == TradeDirection.SELL

    @pytest.mark.asyncio
    async def test_missing_sdk(self, sender):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, SellAmmParams
        from src.shared.execution.errors import InstructionBuildError

        params = SellAmmParams(pool_key=Pubkey.new_unique(), amount=7)
        with pytest.raises(InstructionBuildError, match="AMM SDK"):
            await InstructionFactory().build(_op(OperationType.SELL_AMM, params, sender), BuildContext())

    def test_mock_satisfies_protocol(self, mock_amm):
        from src.execution.amm_gateway import AmmSdk

        assert isinstance(mock_amm, AmmSdk)


class TestBuildErrors:
    """Errors raised before dispatch."""

    @pytest.mark.asyncio
    async def test_missing_sender(self, mint, recipient):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.execution.operations import OperationType, SolTransferParams
        from src.shared.execution.errors import MissingSender

        op = _op(OperationType.SOL_TRANSFER, SolTransferParams(recipient=recipient, amount=Decimal("1")), None)
        factory = InstructionFactory()

        with pytest.raises(MissingSender, match="missing sender Keypair"):
            await factory.build(op, BuildContext())
        assert factory.get_stats()["failed"] == 1

    @pytest.mark.asyncio
    async def test_unknown_type(self, sender):
        from src.execution.instruction_factory import InstructionFactory, BuildContext
        from src.shared.execution.errors import UnknownOperationType

        op = SimpleNamespace(id="weird", type="stake", params=None, sender=sender)

        with pytest.raises(UnknownOperationType, match="Unknown operation type: stake"):
            await InstructionFactory().build(op, BuildContext())
