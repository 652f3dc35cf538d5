# txlistener/types/evm.py

from msgspec import Struct, field
from typing import Optional

from .new import HexStr, EvmAddress, EvmHash


class EvmTransaction(Struct):
    hash: EvmHash
    input: HexStr = HexStr("0x")
    to: Optional[EvmAddress] = None
    from_: Optional[EvmAddress] = field(default=None, name="from")  # from is protected word in python
    value: int = 0
    nonce: Optional[int] = None
    blockHash: Optional[EvmHash] = None
    blockNumber: Optional[int] = None
    transactionIndex: Optional[int] = None
    gas: Optional[int] = None


class EvmTxReceipt(Struct):
    transactionHash: EvmHash
    contractAddress: Optional[EvmAddress] = None
    status: Optional[int] = None
    blockNumber: Optional[int] = None
    gasUsed: Optional[int] = None
    to: Optional[EvmAddress] = None
    from_: Optional[EvmAddress] = field(default=None, name="from")
