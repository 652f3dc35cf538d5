# txlistener/decode/abi.py

from typing import Optional, List, Dict, Any, Sequence

from web3 import Web3
from eth_abi.exceptions import DecodingError

from ..core.errors import CallDecodingError
from ..types import strip_hex_prefix

_w3 = Web3()


def collapse_type(abi_input: Dict[str, Any]) -> str:
    """Canonical type string for an ABI input, expanding tuple components"""
    abi_type = abi_input["type"]
    if not abi_type.startswith("tuple"):
        return abi_type
    components = ",".join(collapse_type(component) for component in abi_input.get("components", []))
    return f"({components}){abi_type[len('tuple'):]}"


def function_signature(abi_entry: Dict[str, Any]) -> str:
    inputs = ",".join(collapse_type(abi_input) for abi_input in abi_entry.get("inputs", []))
    return f"{abi_entry.get('name', '')}({inputs})"


def function_selector(signature: str) -> str:
    return bytes(_w3.keccak(text=signature))[:4].hex()


def get_constructor_interface(abi: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    for entry in abi:
        if entry.get("type") == "constructor":
            return {"name": "", "type": "constructor", "inputs": entry.get("inputs") or [], "outputs": []}
    return {"name": "", "type": "constructor", "inputs": [], "outputs": []}


def get_function(abi: Sequence[Dict[str, Any]], signature: str) -> Optional[Dict[str, Any]]:
    """
    Find the ABI entry for a function signature. Overloads are told apart by
    the full signature; a bare name match is used when no signature matches.
    """
    functions = [entry for entry in abi if entry.get("type", "function") == "function"]
    for entry in functions:
        if function_signature(entry) == signature:
            return entry

    name = signature.split("(")[0]
    for entry in functions:
        if entry.get("name") == name:
            return entry
    return None


def normalize_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]
    return value


def decode_input_params(inputs: Sequence[Dict[str, Any]], data) -> List[Any]:
    """
    Decode ABI encoded arguments in declaration order.

    Raises CallDecodingError when `data` does not fit the declared layout.
    """
    input_types = [collapse_type(abi_input) for abi_input in inputs]

    if isinstance(data, str):
        try:
            data = bytes.fromhex(strip_hex_prefix(data))
        except ValueError as e:
            raise CallDecodingError(f"Call data is not valid hex: {e}", {"types": input_types}) from e

    if not input_types:
        return []

    try:
        decoded = _w3.codec.decode(input_types, bytes(data))
    except (DecodingError, OverflowError, ValueError) as e:
        raise CallDecodingError(f"Unable to decode {input_types}: {e}",
                                {"types": input_types, "length": len(data)}) from e

    return [normalize_value(value) for value in decoded]
