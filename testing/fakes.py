# testing/fakes.py
"""
In-memory collaborators for listener tests.
"""

import threading
import time
from typing import Dict, List, Optional, Set

from web3 import Web3

from txlistener.clients.interfaces import EnvironmentInterface
from txlistener.core.errors import EnvironmentAdapterError
from txlistener.types import Block, CompiledContract, EvmTransaction, EvmTxReceipt, HexStr

codec = Web3().codec

# solc metadata trailers (bzzr0 and ipfs flavours)
METADATA_A = "a165627a7a72305820" + "11" * 32 + "0029"
METADATA_B = "a165627a7a72305820" + "22" * 32 + "0029"
METADATA_IPFS = "a2646970667358221220" + "33" * 32 + "64736f6c6343" + "000813" + "0033"

FOO_RUNTIME = "6080604052600436106100" + "4a" + "57600080fd5b00"
FOO_CREATION = "6080604052348015600f57" + FOO_RUNTIME

BAR_RUNTIME = "60806040526000" + "ff" * 8 + "00"
BAR_CREATION = "6080604052341561000b57" + BAR_RUNTIME

FOO_ADDRESS = "0x" + "f0" * 20
BAR_ADDRESS = "0x" + "b0" * 20
EOA_ADDRESS = "0x" + "e0" * 20
NEW_CONTRACT_ADDRESS = "0x" + "c0" * 20

FOO_ABI = [
    {"type": "constructor", "inputs": [
        {"name": "initial", "type": "uint256"},
        {"name": "label", "type": "string"},
    ]},
    {"type": "function", "name": "bar", "inputs": [{"name": "value", "type": "uint256"}], "outputs": []},
    {"type": "function", "name": "baz", "inputs": [
        {"name": "who", "type": "address"},
        {"name": "flag", "type": "bool"},
    ], "outputs": []},
    {"type": "function", "name": "pair", "inputs": [
        {"name": "p", "type": "tuple", "components": [
            {"name": "a", "type": "uint8"},
            {"name": "b", "type": "bytes32"},
        ]},
    ], "outputs": []},
    {"type": "event", "name": "Done", "inputs": []},
]

BAR_ABI = [
    {"type": "function", "name": "set", "inputs": [{"name": "data", "type": "bytes"}], "outputs": []},
]


def foo_contract(metadata: str = METADATA_A) -> CompiledContract:
    return CompiledContract(
        name="Foo",
        abi=FOO_ABI,
        bytecode=FOO_CREATION + metadata,
        runtime_bytecode=FOO_RUNTIME + metadata,
        function_hashes={
            "bar(uint256)": "2fbebd38",
            "baz(address,bool)": "aaaaaaaa",
            "pair((uint8,bytes32))": "bbbbbbbb",
        },
    )


def bar_contract() -> CompiledContract:
    return CompiledContract(
        name="Bar",
        abi=BAR_ABI,
        bytecode=BAR_CREATION + METADATA_IPFS,
        runtime_bytecode=BAR_RUNTIME + METADATA_IPFS,
        function_hashes={"set(bytes)": "cccccccc"},
    )


def encode_args(types: List[str], values: list) -> str:
    return bytes(codec.encode(types, values)).hex()


def call_tx(tx_hash: str, to: str, selector: str, types: Optional[List[str]] = None,
            values: Optional[list] = None) -> EvmTransaction:
    data = selector + (encode_args(types, values) if types else "")
    return EvmTransaction(hash=tx_hash, to=to, input=HexStr("0x" + data))


def creation_tx(tx_hash: str, creation_code: str, args_hex: str = "") -> EvmTransaction:
    return EvmTransaction(hash=tx_hash, to=None, input=HexStr("0x" + creation_code + args_hex))


def tx_hash(index: int) -> str:
    return "0x" + format(index, "064x")


class FakeArtifactProvider:
    """Artifact provider over a fixed contract set with canned receipts"""

    def __init__(self, contracts: Optional[Dict[str, CompiledContract]] = None,
                 receipts: Optional[Dict[str, EvmTxReceipt]] = None):
        self._contracts = contracts
        self.receipts = receipts or {}
        self.receipt_requests: List[str] = []

    def contracts(self):
        return self._contracts

    def resolve_receipt(self, tx: EvmTransaction, is_active=None) -> EvmTxReceipt:
        self.receipt_requests.append(tx.hash)
        if tx.hash not in self.receipts:
            raise EnvironmentAdapterError("receipt unavailable", {"tx_hash": tx.hash})
        return self.receipts[tx.hash]


class FakeEnvironment(EnvironmentInterface):
    """
    Environment served from dictionaries. Counts code lookups and can be told
    to fail or to slow down specific calls.
    """

    def __init__(self, is_vm: bool = False, height: int = 0):
        self._is_vm = is_vm
        self.height = height
        self.blocks: Dict[int, Block] = {}
        self.code: Dict[str, str] = {}
        self.transactions: Dict[str, EvmTransaction] = {}
        self.receipts: Dict[str, EvmTxReceipt] = {}
        self.code_requests: List[str] = []
        self.block_requests: List[int] = []
        self.receipt_requests: List[str] = []
        self.failing_blocks: Set[int] = set()
        self.fail_height = False
        self.code_delays: Dict[str, float] = {}
        self.on_height = None
        self.on_code = None
        self._listeners = []
        self._lock = threading.Lock()

    @property
    def is_vm(self) -> bool:
        return self._is_vm

    def add_block(self, number: int, transactions: List[EvmTransaction]) -> Block:
        block = Block(origin="vm" if self._is_vm else "network", number=number, transactions=transactions)
        self.blocks[number] = block
        for tx in transactions:
            self.transactions[tx.hash] = tx
        self.height = max(self.height, number)
        return block

    def deploy(self, address: str, code: str) -> None:
        self.code[address.lower()] = code

    def current_block_number(self) -> int:
        if self.fail_height:
            raise EnvironmentAdapterError("node unreachable")
        height = self.height
        if self.on_height is not None:
            self.on_height()
        return height

    def get_block(self, block_number: int, full_transactions: bool = True) -> Block:
        self.block_requests.append(block_number)
        if block_number in self.failing_blocks:
            raise EnvironmentAdapterError("block unavailable", {"block_number": block_number})
        if block_number not in self.blocks:
            return Block(origin="network", number=block_number, transactions=[])
        return self.blocks[block_number]

    def get_deployed_code(self, address: str) -> HexStr:
        with self._lock:
            self.code_requests.append(address.lower())
        delay = self.code_delays.get(address.lower())
        if delay:
            time.sleep(delay)
        if self.on_code is not None:
            self.on_code()
        return HexStr("0x" + self.code.get(address.lower(), ""))

    def get_transaction_by_hash(self, tx_hash: str) -> EvmTransaction:
        if tx_hash not in self.transactions:
            raise EnvironmentAdapterError("unknown transaction", {"tx_hash": tx_hash})
        return self.transactions[tx_hash]

    def get_transaction_receipt(self, tx_hash: str) -> Optional[EvmTxReceipt]:
        with self._lock:
            self.receipt_requests.append(tx_hash)
        return self.receipts.get(tx_hash)

    def register_executed_listener(self, callback) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unregister_executed_listener(self, callback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def execute(self, tx: EvmTransaction, error: Optional[BaseException] = None) -> None:
        """Simulate the VM running a transaction"""
        self.transactions[tx.hash] = tx
        for listener in list(self._listeners):
            listener(None if error else tx.hash, error)


class EventRecorder:
    """Collects published events and lets tests wait for them"""

    def __init__(self):
        self.events = []
        self._condition = threading.Condition()

    def __call__(self, event) -> None:
        with self._condition:
            self.events.append(event)
            self._condition.notify_all()

    def of_type(self, event_type) -> list:
        with self._condition:
            return [event for event in self.events if isinstance(event, event_type)]

    def wait_for(self, event_type, count: int, timeout: float = 5.0) -> bool:
        with self._condition:
            return self._condition.wait_for(
                lambda: sum(1 for event in self.events if isinstance(event, event_type)) >= count,
                timeout,
            )
