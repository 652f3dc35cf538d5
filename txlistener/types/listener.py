# txlistener/types/listener.py

from typing import Optional, Literal, Any, Dict
from msgspec import Struct

from .new import HexStr, EvmAddress, Selector
from .evm import EvmTransaction

BlockOrigin = Literal["network", "vm"]

FALLBACK = "(fallback)"
CONSTRUCTOR = "(constructor)"
VM_BLOCK_NUMBER = -1


def strip_hex_prefix(value: Optional[str]) -> str:
    if not value:
        return ""
    if value[:2] in ("0x", "0X"):
        value = value[2:]
    return value.lower()


class Block(Struct, frozen=True):
    origin: BlockOrigin
    number: int  # -1 for blocks synthesised from a VM execution
    transactions: list[EvmTransaction] = []
    hash: Optional[HexStr] = None
    timestamp: Optional[int] = None


class CompiledContract(Struct):
    """
    Compiler output for a single contract.

    `function_hashes` maps the normalized signature to its 4 byte selector
    the way solc emits it (`{"bar(uint256)": "2fbebd38"}`). `selectors` is the
    reverse index and is derived on construction.
    """
    name: str
    abi: list[Dict[str, Any]] = []
    bytecode: HexStr = HexStr("")
    runtime_bytecode: HexStr = HexStr("")
    function_hashes: Dict[str, Selector] = {}
    selectors: Dict[Selector, str] = {}

    def __post_init__(self) -> None:
        self.bytecode = HexStr(strip_hex_prefix(self.bytecode))
        self.runtime_bytecode = HexStr(strip_hex_prefix(self.runtime_bytecode))
        self.function_hashes = {
            signature: Selector(strip_hex_prefix(selector))
            for signature, selector in self.function_hashes.items()
        }
        self.selectors = {selector: signature for signature, selector in self.function_hashes.items()}

    def signature_for(self, selector: str) -> Optional[str]:
        return self.selectors.get(Selector(strip_hex_prefix(selector)))


class ResolvedCall(Struct, frozen=True):
    contract_name: str
    to: Optional[EvmAddress]
    fn: str  # signature, FALLBACK or CONSTRUCTOR
    params: Optional[list[Any]] = None
    contract_address: Optional[EvmAddress] = None  # set for creations

    @property
    def is_creation(self) -> bool:
        return self.fn == CONSTRUCTOR

    @property
    def is_fallback(self) -> bool:
        return self.fn == FALLBACK


# Event bus messages

class NewBlock(Struct, tag=True):
    block: Block


class NewTransaction(Struct, tag=True):
    tx: EvmTransaction


class TxResolved(Struct, tag=True):
    tx: EvmTransaction
    resolved: ResolvedCall


ListenerEvent = NewBlock | NewTransaction | TxResolved
