"""
Unit tests for the fee model.
"""

import pytest

from dfgbridge.errors import ConfigurationError, FeeTokenUnavailable, InvalidOptions
from dfgbridge.transport import ExecutorOptions, FeeConfig, FeeModel, MessagingFee


class TestFeeConfig:
    """Test FeeConfig."""

    def test_defaults(self):
        """Test default pricing."""
        config = FeeConfig()
        assert config.base_fee == 10**13
        assert config.gas_price == 10**9
        assert config.byte_gas == 16
        assert not config.lz_token_enabled

    def test_negative_values_rejected(self):
        """Test negative pricing."""
        with pytest.raises(ConfigurationError):
            FeeConfig(base_fee=-1)
        with pytest.raises(ConfigurationError):
            FeeConfig(lz_token_denominator=0)

    def test_dict_round_trip(self):
        """Test serialization."""
        config = FeeConfig(base_fee=1, gas_price=2, lz_token_enabled=True)
        assert FeeConfig.from_dict(config.to_dict()) == config


class TestFeeModel:
    """Test fee quotes."""

    def test_native_quote(self):
        """Test the native fee formula."""
        model = FeeModel(FeeConfig(base_fee=100, gas_price=2, byte_gas=1))
        fee = model.quote(b"\x00" * 10, ExecutorOptions(lz_receive_gas=50))

        assert fee == MessagingFee(native_fee=100 + 2 * (50 + 10))
        native_fee, lz_token_fee = fee
        assert lz_token_fee == 0

    def test_quote_includes_native_value(self):
        """Test that executor value is charged to the sender."""
        model = FeeModel(FeeConfig(base_fee=0, gas_price=1, byte_gas=0))
        fee = model.quote(b"", ExecutorOptions(lz_receive_gas=10, lz_receive_value=5))
        assert fee.native_fee == 15

    def test_quote_grows_with_gas(self):
        """Test that more gas never costs less."""
        model = FeeModel()
        low = model.quote(b"\x01" * 160, ExecutorOptions(lz_receive_gas=100000))
        high = model.quote(b"\x01" * 160, ExecutorOptions(lz_receive_gas=200000))
        assert high.native_fee > low.native_fee

    def test_quote_without_gas(self):
        """Test options that give the executor no gas."""
        with pytest.raises(InvalidOptions):
            FeeModel().quote(b"", ExecutorOptions())

    def test_lz_token_unavailable(self):
        """Test paying in the alternate token when none is configured."""
        with pytest.raises(FeeTokenUnavailable):
            FeeModel().quote(b"", ExecutorOptions(lz_receive_gas=1), pay_in_lz_token=True)

    def test_lz_token_quote(self):
        """Test the alternate token split."""
        model = FeeModel(
            FeeConfig(
                base_fee=1000,
                gas_price=1,
                byte_gas=0,
                lz_token_enabled=True,
                lz_token_numerator=1,
                lz_token_denominator=4,
            )
        )
        fee = model.quote(b"", ExecutorOptions(lz_receive_gas=10), pay_in_lz_token=True)
        assert fee == MessagingFee(native_fee=10, lz_token_fee=250)
