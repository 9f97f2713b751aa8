"""
Token Swap Test Suite

Coverage:
  - SwapNetwork: rates, conversion across decimals, direct trades
  - TokenPriceProvider: manager-set prices, sync from the swap network
  - TokenSwapHandler: fee collection, quotes, owner-only and lock checks
"""

import pytest

from vaultguard.constants import ETH_TOKEN
from vaultguard.crypto import encode_function_call
from vaultguard.exceptions import (
    ContractCallError,
    PriceNotAvailableError,
    UnauthorizedError,
    WalletLockedError,
)
from vaultguard.exchange import SwapNetwork, TokenPriceProvider
from vaultguard.modules import TokenSwapHandler
from vaultguard.tokens import ERC20Token, InsufficientAllowanceError


ETHER = 10 ** 18
TOKEN_RATE = 10 ** 16           # 0.01 ether per token
FEE_RATIO = 30                  # 0.3%
NETWORK_TRADE = "trade(address,uint256,address,address,uint256,uint256,address)"
HANDLER_TRADE = "trade(address,address,uint256,address,uint256,uint256)"


@pytest.fixture
def config(config):
    config.settings.fee_ratio = FEE_RATIO
    return config


@pytest.fixture
def network(ledger, accounts):
    return SwapNetwork(ledger, accounts.owner.address)


@pytest.fixture
def token(ledger, accounts):
    return ERC20Token(ledger, "Token", "TOK", 18, 10 ** 6 * ETHER, holder=accounts.owner.address)


@pytest.fixture
def listed(ledger, accounts, infra, token):
    """Token listed on the deployed network, which holds ether and token liquidity."""
    network = infra.swap_network
    network.add_token(network.owner, token.address, TOKEN_RATE, 18)
    token.transfer(accounts.owner.address, network.address, 10 ** 5 * ETHER)
    ledger.fund(network.address, 100 * ETHER)
    return token


# ══════════════════════════════════════════════════════════════════════
#  SWAP NETWORK
# ══════════════════════════════════════════════════════════════════════


class TestSwapRates:

    def test_token_to_ether(self, accounts, network, token):
        network.add_token(accounts.owner.address, token.address, TOKEN_RATE, 18)
        assert network.get_expected_rate(token.address, ETH_TOKEN) == (TOKEN_RATE, TOKEN_RATE)
        assert network.convert(token.address, ETH_TOKEN, 100 * ETHER) == ETHER

    def test_ether_to_token(self, accounts, network, token):
        network.add_token(accounts.owner.address, token.address, TOKEN_RATE, 18)
        assert network.swap_rate(ETH_TOKEN, token.address, ETHER) == 100 * ETHER
        assert network.convert(ETH_TOKEN, token.address, ETHER) == 100 * ETHER

    def test_same_asset(self, network):
        assert network.convert(ETH_TOKEN, ETH_TOKEN, 7) == 7

    def test_token_to_token(self, ledger, accounts, network, token):
        other = ERC20Token(ledger, "Other", "OTH", 18, ETHER, holder=accounts.owner.address)
        network.add_token(accounts.owner.address, token.address, TOKEN_RATE, 18)
        network.add_token(accounts.owner.address, other.address, 2 * TOKEN_RATE, 18)
        assert network.convert(token.address, other.address, 2 * ETHER) == ETHER

    def test_decimals(self, ledger, accounts, network):
        usd = ERC20Token(ledger, "Dollar", "USD", 6, 10 ** 12, holder=accounts.owner.address)
        network.add_token(accounts.owner.address, usd.address, TOKEN_RATE, 6)
        assert network.convert(ETH_TOKEN, usd.address, ETHER) == 100 * 10 ** 6
        assert network.convert(usd.address, ETH_TOKEN, 100 * 10 ** 6) == ETHER

    def test_unlisted(self, network, token):
        with pytest.raises(PriceNotAvailableError, match="not listed"):
            network.convert(ETH_TOKEN, token.address, ETHER)

    def test_listing_is_owner_only(self, accounts, network, token):
        with pytest.raises(UnauthorizedError, match="Must be owner"):
            network.add_token(accounts.nonowner.address, token.address, TOKEN_RATE, 18)


class TestSwapTrades:
    """Direct trades against the network through message calls."""

    def test_ether_for_tokens(self, ledger, accounts, infra, listed):
        buyer = accounts.nonowner.address
        ledger.fund(buyer, ETHER)
        data = encode_function_call(NETWORK_TRADE, ETH_TOKEN, ETHER, listed.address, buyer, 2 ** 255, 0, buyer)
        received = ledger.call(buyer, infra.swap_network.address, ETHER, data)
        assert received == 100 * ETHER
        assert listed.balance_of(buyer) == 100 * ETHER
        assert ledger.balance_of(buyer) == 0
        assert ledger.events("ExecuteTrade")[-1]["dest_amount"] == 100 * ETHER

    def test_max_dest_amount_caps(self, ledger, accounts, infra, listed):
        buyer = accounts.nonowner.address
        ledger.fund(buyer, ETHER)
        data = encode_function_call(NETWORK_TRADE, ETH_TOKEN, ETHER, listed.address, buyer, 5 * ETHER, 0, buyer)
        assert ledger.call(buyer, infra.swap_network.address, ETHER, data) == 5 * ETHER

    def test_minimum_rate(self, ledger, accounts, infra, listed):
        buyer = accounts.nonowner.address
        ledger.fund(buyer, ETHER)
        data = encode_function_call(
            NETWORK_TRADE, ETH_TOKEN, ETHER, listed.address, buyer, 2 ** 255, 101 * ETHER, buyer
        )
        with pytest.raises(ContractCallError, match="below minimum"):
            ledger.call(buyer, infra.swap_network.address, ETHER, data)
        assert ledger.balance_of(buyer) == ETHER

    def test_tokens_need_allowance(self, ledger, accounts, infra, listed):
        seller = accounts.owner.address
        data = encode_function_call(NETWORK_TRADE, listed.address, ETHER, ETH_TOKEN, seller, 2 ** 255, 0, seller)
        with pytest.raises(InsufficientAllowanceError):
            ledger.call(seller, infra.swap_network.address, 0, data)
        listed.approve(seller, infra.swap_network.address, ETHER)
        before = ledger.balance_of(seller)
        assert ledger.call(seller, infra.swap_network.address, 0, data) == ETHER // 100
        assert ledger.balance_of(seller) == before + ETHER // 100


# ══════════════════════════════════════════════════════════════════════
#  PRICE PROVIDER
# ══════════════════════════════════════════════════════════════════════


class TestPriceProvider:

    def test_manager_sets_price(self, ledger, accounts, infra, token):
        provider = infra.price_provider
        provider.set_price(accounts.manager.address, token.address, TOKEN_RATE)
        assert provider.cached_price(token.address) == TOKEN_RATE
        assert provider.get_ether_value(100 * ETHER, token.address) == ETHER
        assert ledger.events("PriceUpdated")[-1]["price"] == TOKEN_RATE

    def test_non_manager_rejected(self, accounts, infra, token):
        with pytest.raises(UnauthorizedError, match="Must be manager"):
            infra.price_provider.set_price(accounts.nonowner.address, token.address, TOKEN_RATE)

    def test_ether_is_its_own_price(self, infra):
        assert infra.price_provider.get_ether_value(123, ETH_TOKEN) == 123

    def test_unknown_price(self, infra, token):
        with pytest.raises(PriceNotAvailableError, match="no price"):
            infra.price_provider.get_ether_value(ETHER, token.address)

    def test_zero_price_clears(self, accounts, infra, token):
        provider = infra.price_provider
        provider.set_price(accounts.manager.address, token.address, TOKEN_RATE)
        provider.set_price(accounts.manager.address, token.address, 0)
        with pytest.raises(PriceNotAvailableError):
            provider.get_ether_value(ETHER, token.address)

    def test_sync_from_network(self, accounts, infra, listed):
        rate = infra.price_provider.sync_price(accounts.manager.address, listed.address)
        assert rate == TOKEN_RATE
        assert infra.price_provider.cached_price(listed.address) == TOKEN_RATE

    def test_sync_without_network(self, ledger, accounts, token):
        provider = TokenPriceProvider(ledger, accounts.owner.address)
        provider.add_manager(accounts.owner.address, accounts.manager.address)
        with pytest.raises(PriceNotAvailableError, match="no swap network"):
            provider.sync_price(accounts.manager.address, token.address)


# ══════════════════════════════════════════════════════════════════════
#  TOKEN SWAP HANDLER
# ══════════════════════════════════════════════════════════════════════


class TestTokenSwapHandler:
    """Swaps from the wallet with a 0.3% fee paid to the multisig."""

    def test_fee(self, infra):
        assert infra.token_swap_handler.fee_ratio == FEE_RATIO
        assert infra.token_swap_handler.fee(10000) == 30

    def test_expected_trade(self, infra, listed):
        dest_amount, rate = infra.token_swap_handler.get_expected_trade(ETH_TOKEN, listed.address, ETHER)
        assert rate == 100 * ETHER
        assert dest_amount == 997 * ETHER // 10

    def test_ether_to_token(self, ledger, accounts, infra, wallet, listed):
        collector = infra.multisig.address
        received = infra.token_swap_handler.trade(
            accounts.owner.address, wallet.address, ETH_TOKEN, ETHER, listed.address, 2 ** 255, 0
        )
        assert received == 997 * ETHER // 10
        assert listed.balance_of(wallet.address) == received
        assert ledger.balance_of(wallet.address) == 49 * ETHER
        assert ledger.balance_of(collector) == 3 * ETHER // 1000
        event = ledger.events("TokenExchanged")[-1]
        assert event["wallet"] == wallet.address
        assert event["dest_amount"] == received

    def test_token_to_ether(self, ledger, accounts, infra, wallet, listed):
        listed.transfer(accounts.owner.address, wallet.address, 100 * ETHER)
        before = ledger.balance_of(wallet.address)
        received = infra.token_swap_handler.trade(
            accounts.owner.address, wallet.address, listed.address, 100 * ETHER, ETH_TOKEN, 2 ** 255, 0
        )
        assert received == 997 * ETHER // 1000
        assert ledger.balance_of(wallet.address) == before + received
        assert listed.balance_of(wallet.address) == 0
        assert listed.balance_of(infra.multisig.address) == 3 * ETHER // 10

    def test_owner_only(self, accounts, infra, wallet, listed):
        with pytest.raises(UnauthorizedError, match="TE: must be an owner"):
            infra.token_swap_handler.trade(
                accounts.nonowner.address, wallet.address, ETH_TOKEN, ETHER, listed.address, 2 ** 255, 0
            )

    def test_locked_wallet(self, accounts, infra, wallet, listed):
        infra.guardian_handler.add_guardian(accounts.owner.address, wallet.address, accounts.guardian1.address)
        infra.lock_handler.lock(accounts.guardian1.address, wallet.address)
        with pytest.raises(WalletLockedError, match="TE: wallet must be unlocked"):
            infra.token_swap_handler.trade(
                accounts.owner.address, wallet.address, ETH_TOKEN, ETHER, listed.address, 2 ** 255, 0
            )

    def test_failed_trade_reverts_fee(self, ledger, accounts, infra, wallet, listed):
        with pytest.raises(ContractCallError):
            infra.token_swap_handler.trade(
                accounts.owner.address, wallet.address, ETH_TOKEN, ETHER, listed.address, 2 ** 255, 10 ** 30
            )
        assert ledger.balance_of(wallet.address) == 50 * ETHER
        assert ledger.balance_of(infra.multisig.address) == 0

    def test_relayed_trade(self, ledger, accounts, infra, wallet, listed, relay):
        relay(
            infra.token_swap_handler,
            wallet,
            HANDLER_TRADE,
            [wallet.address, ETH_TOKEN, ETHER, listed.address, 2 ** 255, 0],
            owner=accounts.owner,
        )
        assert listed.balance_of(wallet.address) == 997 * ETHER // 10

    def test_invalid_fee_ratio(self, ledger, infra):
        with pytest.raises(ValueError, match="fee ratio"):
            TokenSwapHandler(
                ledger, infra.registry, infra.guardian_storage, infra.swap_network, infra.multisig.address, 10000
            )
