"""
Cross-chain messaging transport.

Two endpoint flavours share one contract: :class:`EndpointMock` delivers
synchronously inside ``send``; :class:`AsyncEndpoint` goes through a
:class:`MessagingNetwork` that may reorder and duplicate packets.
"""

from .endpoint import BaseEndpoint, EndpointMock, MessageReceiver
from .fees import FeeConfig, FeeModel
from .network import AsyncEndpoint, MessagingNetwork
from .options import (
    EXECUTOR_WORKER_ID,
    OPTION_TYPE_LZRECEIVE,
    OPTION_TYPE_NATIVE_DROP,
    TYPE_3,
    ExecutorOptions,
    NativeDrop,
    Options,
    combine_options,
    decode_options,
    to_option_bytes,
)
from .transport_types import (
    DeliveryReport,
    DeliveryStatus,
    MessagingFee,
    MessagingParams,
    MessagingReceipt,
    Origin,
    Packet,
    compute_guid,
    guid_hex,
)

__all__ = [
    # Endpoints
    "MessageReceiver",
    "BaseEndpoint",
    "EndpointMock",
    "AsyncEndpoint",
    "MessagingNetwork",
    # Fees
    "FeeConfig",
    "FeeModel",
    # Options
    "Options",
    "ExecutorOptions",
    "NativeDrop",
    "decode_options",
    "combine_options",
    "to_option_bytes",
    "TYPE_3",
    "EXECUTOR_WORKER_ID",
    "OPTION_TYPE_LZRECEIVE",
    "OPTION_TYPE_NATIVE_DROP",
    # Types
    "DeliveryStatus",
    "DeliveryReport",
    "Origin",
    "MessagingParams",
    "MessagingFee",
    "MessagingReceipt",
    "Packet",
    "compute_guid",
    "guid_hex",
]
