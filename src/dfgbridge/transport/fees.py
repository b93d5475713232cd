"""
Fee model for message delivery.

The native fee covers a flat protocol fee plus the destination execution cost
(lzReceive gas and payload bytes, priced at a fixed gas price) plus any native
value the executor must front. When paying in the alternate token, the
protocol part of the fee is charged in that token instead.
"""

from dataclasses import dataclass
from typing import Any, Dict

from ..errors import ConfigurationError, FeeTokenUnavailable, InvalidOptions
from .options import ExecutorOptions
from .transport_types import MessagingFee


@dataclass
class FeeConfig:
    """Pricing parameters of an endpoint."""

    base_fee: int = 10**13
    gas_price: int = 10**9
    byte_gas: int = 16
    lz_token_enabled: bool = False
    lz_token_numerator: int = 1
    lz_token_denominator: int = 1

    def __post_init__(self):
        for name in ("base_fee", "gas_price", "byte_gas", "lz_token_numerator"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} cannot be negative", config_key=name)
        if self.lz_token_denominator <= 0:
            raise ConfigurationError(
                "lz_token_denominator must be positive",
                config_key="lz_token_denominator",
                config_value=self.lz_token_denominator,
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "base_fee": self.base_fee,
            "gas_price": self.gas_price,
            "byte_gas": self.byte_gas,
            "lz_token_enabled": self.lz_token_enabled,
            "lz_token_numerator": self.lz_token_numerator,
            "lz_token_denominator": self.lz_token_denominator,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeeConfig":
        """Create from dictionary."""
        return cls(
            base_fee=data.get("base_fee", 10**13),
            gas_price=data.get("gas_price", 10**9),
            byte_gas=data.get("byte_gas", 16),
            lz_token_enabled=data.get("lz_token_enabled", False),
            lz_token_numerator=data.get("lz_token_numerator", 1),
            lz_token_denominator=data.get("lz_token_denominator", 1),
        )


class FeeModel:
    """Deterministic fee computation."""

    def __init__(self, config: FeeConfig = None):
        self.config = config or FeeConfig()

    def execution_gas(self, message: bytes, options: ExecutorOptions) -> int:
        return options.lz_receive_gas + self.config.byte_gas * len(message)

    def quote(
        self, message: bytes, options: ExecutorOptions, pay_in_lz_token: bool = False
    ) -> MessagingFee:
        if options.lz_receive_gas <= 0:
            raise InvalidOptions("Options carry no lzReceive gas", field="lz_receive_gas", value=0)

        execution_fee = (
            self.config.gas_price * self.execution_gas(message, options)
            + options.total_native_value
        )
        if not pay_in_lz_token:
            return MessagingFee(native_fee=self.config.base_fee + execution_fee)

        if not self.config.lz_token_enabled:
            raise FeeTokenUnavailable("Endpoint has no alternate fee token configured")
        lz_token_fee = (
            self.config.base_fee
            * self.config.lz_token_numerator
            // self.config.lz_token_denominator
        )
        return MessagingFee(native_fee=execution_fee, lz_token_fee=lz_token_fee)
