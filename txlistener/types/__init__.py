# txlistener/types/__init__.py

from .new import (
    HexStr,
    EvmHash,
    EvmAddress,
    Selector,
)

from .evm import (
    EvmTransaction,
    EvmTxReceipt,
)

from .config import (
    ProviderKind,
    RpcConfig,
    LoggingConfig,
)

from .listener import (
    BlockOrigin,
    Block,
    CompiledContract,
    ResolvedCall,
    NewBlock,
    NewTransaction,
    TxResolved,
    ListenerEvent,
    FALLBACK,
    CONSTRUCTOR,
    VM_BLOCK_NUMBER,
    strip_hex_prefix,
)
