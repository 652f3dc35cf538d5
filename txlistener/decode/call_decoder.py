# txlistener/decode/call_decoder.py

from typing import Optional, Mapping

from ..core.logging import LoggingMixin
from ..listener.cache import ResolutionCache, Guard
from ..types import (
    CompiledContract,
    EvmAddress,
    EvmTransaction,
    ResolvedCall,
    FALLBACK,
    CONSTRUCTOR,
    strip_hex_prefix,
)
from .abi import decode_input_params, get_constructor_interface, get_function

SELECTOR_HEX_LENGTH = 8


class CallDecoder(LoggingMixin):
    """
    Turns a transaction sent to (or creating) a known contract into a
    ResolvedCall and memoizes it by transaction hash.
    """

    def __init__(self, cache: ResolutionCache):
        self.cache = cache

    def resolve_function(self, contract_name: str, contracts: Mapping[str, CompiledContract],
                         tx: EvmTransaction, is_constructor: bool,
                         contract_address: Optional[EvmAddress] = None,
                         guard: Optional[Guard] = None) -> Optional[ResolvedCall]:
        """
        Resolve and memoize `tx`. None when `guard` rejects the cache write,
        i.e. the result belongs to a session that has ended.
        """
        known = self.cache.resolved_transaction(tx.hash)
        if known is not None:
            return known

        contract = contracts[contract_name]
        if is_constructor:
            resolved = self._resolve_constructor(contract, tx, contract_address)
        else:
            resolved = self._resolve_call(contract, tx)

        return self.cache.record_transaction(tx.hash, resolved, guard)

    def _resolve_call(self, contract: CompiledContract, tx: EvmTransaction) -> ResolvedCall:
        input_data = strip_hex_prefix(tx.input)
        signature = contract.signature_for(input_data[:SELECTOR_HEX_LENGTH])

        if signature is None:
            return ResolvedCall(contract_name=contract.name, to=tx.to, fn=FALLBACK, params=None)

        abi_entry = get_function(contract.abi, signature)
        inputs = abi_entry.get("inputs", []) if abi_entry else []
        params = decode_input_params(inputs, input_data[SELECTOR_HEX_LENGTH:])

        return ResolvedCall(contract_name=contract.name, to=tx.to, fn=signature, params=params)

    def _resolve_constructor(self, contract: CompiledContract, tx: EvmTransaction,
                             contract_address: Optional[EvmAddress]) -> ResolvedCall:
        params = None
        if contract.bytecode:
            # input is creation bytecode followed by the encoded constructor arguments
            input_data = strip_hex_prefix(tx.input)
            constructor = get_constructor_interface(contract.abi)
            params = decode_input_params(constructor["inputs"], input_data[len(contract.bytecode):])

        return ResolvedCall(
            contract_name=contract.name,
            to=None,
            fn=CONSTRUCTOR,
            params=params,
            contract_address=contract_address,
        )
