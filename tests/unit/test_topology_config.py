"""
Unit tests for topology declarations.
"""

import json

import pytest

from dfgbridge.errors import ConfigurationError
from dfgbridge.topology import (
    BASE_SEPOLIA_CONTRACT,
    DEFAULT_TOPOLOGY,
    SEPOLIA_CONTRACT,
    Connection,
    EndpointId,
    OmniGraph,
    OmniPoint,
    load_topology,
    parse_eid,
)

A = OmniPoint(1, "EthBridge")
B = OmniPoint(2, "BaseBridge")


class TestEndpointIds:
    """Test endpoint id parsing."""

    def test_known_ids(self):
        """Test well-known testnet ids."""
        assert EndpointId.SEPOLIA_V2_TESTNET == 40161
        assert EndpointId.BASE_V2_TESTNET == 40245

    @pytest.mark.parametrize(
        "value,expected",
        [(40161, 40161), ("40245", 40245), ("SEPOLIA_V2_TESTNET", 40161)],
    )
    def test_parse_eid(self, value, expected):
        """Test accepted forms."""
        assert parse_eid(value) == expected

    @pytest.mark.parametrize("value", [0, -1, "sepolia", None, True])
    def test_parse_eid_invalid(self, value):
        """Test rejected forms."""
        with pytest.raises(ConfigurationError):
            parse_eid(value)


class TestOmniPoint:
    """Test OmniPoint."""

    def test_dict_forms(self):
        """Test plain and wrapped contract entries."""
        assert OmniPoint.from_dict({"eid": 1, "contractName": "EthBridge"}) == A
        assert OmniPoint.from_dict({"contract": {"eid": "1", "contractName": "EthBridge"}}) == A
        assert A.to_dict() == {"eid": 1, "contractName": "EthBridge"}

    def test_missing_name(self):
        """Test an entry without a contract name."""
        with pytest.raises(ConfigurationError):
            OmniPoint.from_dict({"eid": 1})

    def test_str(self):
        """Test string form."""
        assert str(A) == "EthBridge@1"


class TestConnection:
    """Test Connection."""

    def test_dict_round_trip(self):
        """Test serialization with enforced options."""
        connection = Connection(A, B, "0x0003")
        data = connection.to_dict()

        assert data["config"] == {"enforcedOptions": "0x0003"}
        assert Connection.from_dict(data) == connection

    def test_missing_end(self):
        """Test a connection without a target."""
        with pytest.raises(ConfigurationError):
            Connection.from_dict({"from": A.to_dict()})


class TestOmniGraph:
    """Test graph validation."""

    def test_bidirectional_is_valid(self):
        """Test a symmetric pair."""
        graph = OmniGraph.bidirectional(A, B)
        assert graph.validate(strict=True) == []
        assert graph.point(2) == B
        assert graph.point(3) is None

    def test_duplicate_eid(self):
        """Test two contracts on one eid."""
        graph = OmniGraph(contracts=[A, OmniPoint(1, "Other")])
        with pytest.raises(ConfigurationError):
            graph.validate()

    def test_undeclared_endpoint(self):
        """Test a connection to a contract not in the graph."""
        graph = OmniGraph(contracts=[A], connections=[Connection(A, B)])
        with pytest.raises(ConfigurationError):
            graph.validate()

    def test_self_connection(self):
        """Test a contract connected to itself."""
        graph = OmniGraph(contracts=[A, B], connections=[Connection(A, A)])
        with pytest.raises(ConfigurationError):
            graph.validate()

    def test_one_sided_connection(self):
        """Test a missing reverse connection."""
        graph = OmniGraph(contracts=[A, B], connections=[Connection(A, B)])

        warnings = graph.validate()
        assert warnings == ["EthBridge@1 -> BaseBridge@2 has no reverse connection"]
        with pytest.raises(ConfigurationError):
            graph.validate(strict=True)

    def test_dict_round_trip(self):
        """Test serialization of a full graph."""
        graph = OmniGraph.bidirectional(A, B, enforced_options="0x0003")
        assert OmniGraph.from_dict(graph.to_dict()) == graph

    def test_from_dict_requires_mapping(self):
        """Test a topology that is not an object."""
        with pytest.raises(ConfigurationError):
            OmniGraph.from_dict([])

    def test_default_topology(self):
        """Test the Sepolia to Base Sepolia topology."""
        assert DEFAULT_TOPOLOGY.contracts == [SEPOLIA_CONTRACT, BASE_SEPOLIA_CONTRACT]
        assert SEPOLIA_CONTRACT.contract_name == "EthBridge"
        assert BASE_SEPOLIA_CONTRACT.eid == 40245
        assert DEFAULT_TOPOLOGY.validate(strict=True) == []


class TestLoadTopology:
    """Test loading topology files."""

    def test_load(self, tmp_path):
        """Test reading a JSON file."""
        path = tmp_path / "topology.json"
        path.write_text(json.dumps(DEFAULT_TOPOLOGY.to_dict()))

        assert load_topology(path) == DEFAULT_TOPOLOGY

    def test_load_by_enum_name(self, tmp_path):
        """Test eids given as endpoint id names."""
        path = tmp_path / "topology.json"
        path.write_text(
            json.dumps(
                {
                    "contracts": [
                        {"contract": {"eid": "SEPOLIA_V2_TESTNET", "contractName": "EthBridge"}},
                        {"contract": {"eid": "BASE_V2_TESTNET", "contractName": "BaseBridge"}},
                    ],
                    "connections": [],
                }
            )
        )
        assert load_topology(str(path)).contracts == [SEPOLIA_CONTRACT, BASE_SEPOLIA_CONTRACT]

    def test_missing_file(self, tmp_path):
        """Test a path that does not exist."""
        with pytest.raises(ConfigurationError):
            load_topology(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        """Test a file that is not JSON."""
        path = tmp_path / "topology.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_topology(path)

    def test_strict_load(self, tmp_path):
        """Test strict validation while loading."""
        path = tmp_path / "topology.json"
        graph = OmniGraph(contracts=[A, B], connections=[Connection(A, B)])
        path.write_text(json.dumps(graph.to_dict()))

        assert load_topology(path) == graph
        with pytest.raises(ConfigurationError):
            load_topology(path, strict=True)
