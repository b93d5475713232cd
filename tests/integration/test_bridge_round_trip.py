"""
Integration tests for the EthDFG <-> BaseDFG bridge.

These tests exercise both chains end to end: ledgers, adapters, endpoints and
wiring, the way the deployment is used in practice.
"""

import threading

import pytest

from dfgbridge.bridge import TransferStatus
from dfgbridge.chain import make_address
from dfgbridge.errors import UntrustedSender
from dfgbridge.testing import deploy_bridge_pair, lz_receive_options
from dfgbridge.topology import (
    BASE_SEPOLIA_CONTRACT,
    DEFAULT_TOPOLOGY,
    SEPOLIA_CONTRACT,
    check_wiring,
    wire,
)
from dfgbridge.transport import DeliveryStatus, Options

pytestmark = pytest.mark.integration

WEI = 10**18


class TestRoundTrip:
    """Bridge to the remote chain and back."""

    def test_eth_to_base_and_back(self, deployment):
        """Test the full round trip."""
        d = deployment
        d.fund_user(1000)
        assert d.eth_dfg.balance_of(d.user.address) == 1000

        d.bridge_eth_to_base(1000)
        assert d.eth_dfg.balance_of(d.user.address) == 0
        assert d.base_dfg.balance_of(d.user.address) == 1000 * WEI

        d.bridge_base_to_eth(1000 * WEI)
        assert d.eth_dfg.balance_of(d.user.address) == 1000
        assert d.base_dfg.balance_of(d.user.address) == 0
        assert d.base_dfg.total_supply == 0
        assert d.eth_bridge.locked() == 0

    def test_supply_is_conserved(self, deployment):
        """Test that locked EthDFG always backs minted BaseDFG."""
        d = deployment
        d.fund_user(500)

        d.bridge_eth_to_base(300)
        d.bridge_base_to_eth(120 * WEI)
        d.bridge_eth_to_base(50)

        assert d.eth_bridge.locked() == 230
        assert d.base_dfg.total_supply == 230 * WEI
        assert d.eth_dfg.balance_of(d.user.address) + d.eth_bridge.locked() == 500

    def test_recipient_other_than_sender(self, deployment):
        """Test bridging to a different address on the remote chain."""
        d = deployment
        d.fund_user(10)
        friend = make_address("friend")

        native_fee, _ = d.eth_bridge.quote(d.eid_b, friend, 10, 0, lz_receive_options())
        d.eth_bridge.bridge_token(
            d.eid_b, friend, 10, 0, lz_receive_options(),
            sender=d.user.address, value=native_fee,
        )

        assert d.base_dfg.balance_of(friend) == 10 * WEI
        assert d.base_dfg.balance_of(d.user.address) == 0

    def test_native_drop_reaches_recipient(self, deployment):
        """Test gas money delivered alongside the tokens."""
        d = deployment
        d.fund_user(10)
        friend = make_address("friend")
        drop = (
            Options.new_options()
            .add_executor_lz_receive_option(200000)
            .add_executor_native_drop_option(10**15, friend)
            .to_hex()
        )

        d.bridge_eth_to_base(10, options=drop)

        assert d.chain_b.native_balance_of(friend) == 10**15


class TestConcurrentTransfers:
    """Transfers submitted from several threads at once."""

    @staticmethod
    def run_threads(*targets):
        errors = []

        def guarded(target):
            def run():
                try:
                    target()
                except Exception as e:
                    errors.append(e)
            return run

        threads = [threading.Thread(target=guarded(t), daemon=True) for t in targets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        assert not any(thread.is_alive() for thread in threads), "transfers did not finish"
        assert errors == []

    def test_opposite_directions_do_not_deadlock(self, deployment):
        """Test bridging both ways at the same time over synchronous endpoints."""
        d = deployment
        d.fund_user(40)
        d.bridge_eth_to_base(20)

        def eth_to_base():
            for _ in range(20):
                d.bridge_eth_to_base(1)

        def base_to_eth():
            for _ in range(20):
                d.bridge_base_to_eth(WEI)

        self.run_threads(eth_to_base, base_to_eth)

        assert d.chain_a._lock is d.chain_b._lock
        assert d.eth_dfg.balance_of(d.user.address) == 20
        assert d.base_dfg.balance_of(d.user.address) == 20 * WEI
        assert d.eth_bridge.locked() == 20
        assert d.base_dfg.total_supply == 20 * WEI
        assert len(d.eth_bridge.transfers) == 21
        assert len(d.base_bridge.transfers) == 20

    def test_same_direction_from_many_threads(self, deployment):
        """Test that concurrent transfers on one route are all credited once."""
        d = deployment
        d.fund_user(40)

        def send_ten():
            for _ in range(10):
                d.bridge_eth_to_base(1)

        self.run_threads(*[send_ten] * 4)

        assert d.eth_dfg.balance_of(d.user.address) == 0
        assert d.base_dfg.balance_of(d.user.address) == 40 * WEI
        assert d.base_bridge.metrics.transfers_received == 40
        assert len({t.nonce for t in d.eth_bridge.transfers.values()}) == 40


class TestPeerMisconfiguration:
    """Test one-sided and stale peers."""

    def test_asymmetric_peers_reject_delivery(self):
        """Test that a destination that does not trust the source refuses it."""
        d = deploy_bridge_pair(wire_peers=False)
        d.eth_bridge.set_peer(d.eid_b, d.base_bridge.address, sender=d.owner_a.address)
        d.fund_user(10)

        with pytest.raises(UntrustedSender):
            d.bridge_eth_to_base(10)

        assert d.eth_dfg.balance_of(d.user.address) == 10
        assert d.eth_bridge.locked() == 0
        assert [issue.problem for issue in check_wiring(d.graph, d.deployments)] == [
            "remote does not trust back",
            "peer not set",
        ]

        d.rewire()
        d.bridge_eth_to_base(10)
        assert d.base_dfg.balance_of(d.user.address) == 10 * WEI

    def test_default_topology_on_testnet_eids(self):
        """Test wiring the Sepolia and Base Sepolia deployment."""
        d = deploy_bridge_pair(
            eid_a=SEPOLIA_CONTRACT.eid, eid_b=BASE_SEPOLIA_CONTRACT.eid, wire_peers=False
        )
        deployments = {SEPOLIA_CONTRACT: d.eth_bridge, BASE_SEPOLIA_CONTRACT: d.base_bridge}
        owners = {SEPOLIA_CONTRACT: d.owner_a.address, BASE_SEPOLIA_CONTRACT: d.owner_b.address}

        assert len(wire(DEFAULT_TOPOLOGY, deployments, owners)) == 2
        assert wire(DEFAULT_TOPOLOGY, deployments, owners) == []
        assert check_wiring(DEFAULT_TOPOLOGY, deployments) == []

        d.fund_user(7)
        d.bridge_eth_to_base(7)
        assert d.base_dfg.balance_of(d.user.address) == 7 * WEI


class TestAsyncRoundTrip:
    """Round trip over the asynchronous network."""

    def test_round_trip_with_reordering(self):
        """Test many transfers in both directions with shuffled delivery."""
        d = deploy_bridge_pair(asynchronous=True, shuffle=True, seed=42)
        d.fund_user(100)

        for amount in (10, 20, 30):
            d.bridge_eth_to_base(amount)
        d.network.deliver_pending()
        assert d.base_dfg.balance_of(d.user.address) == 60 * WEI

        d.bridge_base_to_eth(25 * WEI)
        d.bridge_base_to_eth(35 * WEI)
        reports = d.network.deliver_pending()

        assert all(r.status == DeliveryStatus.DELIVERED for r in reports)
        assert d.eth_dfg.balance_of(d.user.address) == 100
        assert d.base_dfg.balance_of(d.user.address) == 0
        assert d.eth_bridge.locked() == 0
        for adapter in (d.eth_bridge, d.base_bridge):
            assert all(t.status == TransferStatus.MINTED for t in adapter.transfers.values())

    def test_in_flight_window(self):
        """Test that value is debited before it is credited."""
        d = deploy_bridge_pair(asynchronous=True)
        d.fund_user(10)

        d.bridge_eth_to_base(10)

        assert d.eth_dfg.balance_of(d.user.address) == 0
        assert d.base_dfg.balance_of(d.user.address) == 0
        assert d.eth_bridge.transfers_by_status(TransferStatus.IN_FLIGHT)

        d.network.deliver_pending()
        assert d.base_dfg.balance_of(d.user.address) == 10 * WEI
