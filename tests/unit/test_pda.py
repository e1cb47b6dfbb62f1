"""
PDA Resolver Unit Tests
=======================
Deterministic derivations and the on-chain creator lookup.
"""

import pytest
from solders.pubkey import Pubkey


class TestSeedDerivations:
    """Same inputs, same address."""

    def test_bonding_curve_deterministic(self, mint):
        from src.pumpfun.pda import bonding_curve

        assert bonding_curve(mint) == bonding_curve(mint)

    def test_distinct_mints_distinct_curves(self):
        from src.pumpfun.pda import bonding_curve

        assert bonding_curve(Pubkey.new_unique())[0] != bonding_curve(Pubkey.new_unique())[0]

    def test_curve_matches_manual_derivation(self, mint):
        from src.pumpfun.pda import bonding_curve
        from src.pumpfun.constants import PUMP_PROGRAM_ID

        expected = Pubkey.find_program_address([b"bonding-curve", bytes(mint)], PUMP_PROGRAM_ID)
        assert bonding_curve(mint) == expected

    def test_fixed_accounts_match_known_addresses(self):
        """Seed-only PDAs resolve to the published program accounts."""
        from src.pumpfun import pda
        from src.pumpfun.constants import GLOBAL_ACCOUNT, EVENT_AUTHORITY

        assert pda.global_account()[0] == GLOBAL_ACCOUNT
        assert pda.event_authority()[0] == EVENT_AUTHORITY

    def test_fee_config_under_fee_program(self):
        from src.pumpfun.pda import fee_config
        from src.pumpfun.constants import FEE_PROGRAM_ID, PUMP_PROGRAM_ID, FEE_CONFIG_KEY

        address, _ = fee_config()
        assert address == Pubkey.find_program_address([b"fee_config", FEE_CONFIG_KEY], FEE_PROGRAM_ID)[0]
        assert address != Pubkey.find_program_address([b"fee_config", FEE_CONFIG_KEY], PUMP_PROGRAM_ID)[0]

    def test_user_volume_accumulator_per_user(self, sender):
        from src.pumpfun.pda import user_volume_accumulator

        other = Pubkey.new_unique()
        assert user_volume_accumulator(sender.pubkey())[0] != user_volume_accumulator(other)[0]


class TestBondingCurvePdas:
    """Bundled derivation."""

    def test_creator_vault_defaults_to_user(self, mint, sender):
        from src.pumpfun.pda import derive_bonding_curve_pdas, creator_vault

        pdas = derive_bonding_curve_pdas(mint, sender.pubkey())
        assert pdas.creator_vault == creator_vault(sender.pubkey())[0]

    def test_creator_vault_keyed_on_creator(self, mint, sender):
        from src.pumpfun.pda import derive_bonding_curve_pdas, creator_vault

        creator = Pubkey.new_unique()
        pdas = derive_bonding_curve_pdas(mint, sender.pubkey(), creator)
        assert pdas.creator_vault == creator_vault(creator)[0]

    def test_associated_accounts(self, mint, sender):
        from spl.token.instructions import get_associated_token_address
        from src.pumpfun.pda import derive_bonding_curve_pdas

        pdas = derive_bonding_curve_pdas(mint, sender.pubkey())
        assert pdas.associated_user == get_associated_token_address(sender.pubkey(), mint)
        assert pdas.associated_bonding_curve == get_associated_token_address(pdas.bonding_curve, mint)

    def test_derivation_is_pure(self, mint, sender):
        from src.pumpfun.pda import derive_bonding_curve_pdas

        assert derive_bonding_curve_pdas(mint, sender.pubkey()) == derive_bonding_curve_pdas(mint, sender.pubkey())


class TestCreatorLookup:
    """Creator read from bonding-curve account data."""

    def _curve_data(self, creator: Pubkey) -> bytes:
        from src.pumpfun.constants import BONDING_CURVE_ACCOUNT_DISCRIMINATOR

        # discriminator + 5 u64 reserves/supply + complete flag
        body = BONDING_CURVE_ACCOUNT_DISCRIMINATOR + bytes(8 * 5) + bytes([0])
        return body + bytes(creator) + bytes(16)

    def test_decode_creator(self):
        from src.pumpfun.pda import decode_bonding_curve_creator

        creator = Pubkey.new_unique()
        assert decode_bonding_curve_creator(self._curve_data(creator)) == creator

    def test_decode_short_data(self):
        from src.pumpfun.pda import decode_bonding_curve_creator

        assert decode_bonding_curve_creator(bytes(49)) is None
        assert decode_bonding_curve_creator(None) is None

    @pytest.mark.asyncio
    async def test_fetch_creator(self, mock_rpc, mint):
        from src.pumpfun.pda import bonding_curve, fetch_bonding_curve_creator

        creator = Pubkey.new_unique()
        mock_rpc.set_account_data(bonding_curve(mint)[0], self._curve_data(creator))

        assert await fetch_bonding_curve_creator(mock_rpc, mint) == creator
        assert mock_rpc.account_requests == [bonding_curve(mint)[0]]

    @pytest.mark.asyncio
    async def test_fetch_missing_account(self, mock_rpc, mint):
        from src.pumpfun.pda import fetch_bonding_curve_creator

        assert await fetch_bonding_curve_creator(mock_rpc, mint) is None
