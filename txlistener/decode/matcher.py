# txlistener/decode/matcher.py

from typing import Optional, Mapping, Literal

from ..core.logging import LoggingMixin
from ..types import CompiledContract
from .bytecode import compare_bytecode

BytecodeField = Literal["bytecode", "runtime_bytecode"]


class ContractMatcher(LoggingMixin):
    """Identifies a compiled contract from raw code"""

    def try_resolve_contract(self, code_to_resolve, contracts: Mapping[str, CompiledContract],
                             field: BytecodeField) -> Optional[str]:
        """
        Return the name of the first contract, in provider order, whose
        `field` bytecode matches `code_to_resolve`. None when nothing matches.
        """
        if not code_to_resolve or not contracts:
            return None

        for name, contract in contracts.items():
            if compare_bytecode(code_to_resolve, getattr(contract, field)):
                self.log_debug("Bytecode matched", contract_name=name, field=field)
                return name
        return None
