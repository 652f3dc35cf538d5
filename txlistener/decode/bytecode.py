# txlistener/decode/bytecode.py
"""
Bytecode comparison tolerant of compiler noise.

Solidity appends a CBOR encoded metadata section (source hash, compiler
version) to both creation and runtime code. Two compilations of the same
source can differ only there, so the section is removed from both sides
before comparing. Unlinked library references and the address guard that
libraries embed at deploy time are blanked the same way.
"""

import re

from ..types import strip_hex_prefix

# a1/a2/a3 map header, bzzr0 | bzzr1 | ipfs key, 32/34 byte hash,
# optional experimental flag, optional solc version, 2 byte length trailer.
# solc --metadata-hash none leaves a one-entry map with only the version.
METADATA_PATTERN = re.compile(
    r"a[1-3]"
    r"(?:65627a7a7230|65627a7a7231|6469706673)"
    r"(?:5820[0-9a-f]{64}|5822[0-9a-f]{68})"
    r"(?:6c6578706572696d656e74616cf5)?"
    r"(?:64736f6c6343[0-9a-f]{6})?"
    r"00(?:29|32|33)"
    r"|a164736f6c6343[0-9a-f]{6}000a"
)

# __LibName______ (legacy) and __$keccak$__ (solc >= 0.5) placeholders, 20 bytes each
LIBRARY_PLACEHOLDER_PATTERN = re.compile(r"__[$a-zA-Z0-9_.:/\-]{36}__")
LIBRARY_PLACEHOLDER_LENGTH = 40

# PUSH20 <address> ADDRESS EQ, with the address zeroed in the compiled runtime code
LIBRARY_GUARD_PREFIX = "73" + "00" * 20 + "3014"
LIBRARY_GUARD_ADDRESS_START = 2
BLANK_ADDRESS = "0" * LIBRARY_PLACEHOLDER_LENGTH


def normalize_bytecode(code) -> str:
    if isinstance(code, (bytes, bytearray)):
        return bytes(code).hex()
    return strip_hex_prefix(code)


def strip_metadata(code: str) -> str:
    """Remove every Solidity metadata section from a normalized hex string"""
    return METADATA_PATTERN.sub("", code)


def _blank(code: str, start: int, length: int = LIBRARY_PLACEHOLDER_LENGTH) -> str:
    if start >= len(code):
        return code
    end = min(start + length, len(code))
    return code[:start] + "0" * (end - start) + code[end:]


def _blank_library_references(code: str, reference: str):
    for match in LIBRARY_PLACEHOLDER_PATTERN.finditer(reference):
        start = match.start()
        reference = _blank(reference, start)
        code = _blank(code, start)
    return code, reference


def compare_bytecode(code_to_resolve, reference) -> bool:
    """
    True when `reference` (compiler output) identifies `code_to_resolve`
    (on-chain code or creation input). The reference, once metadata is
    stripped, must be an exact prefix of the resolved code, so creation
    input carrying constructor arguments still matches.
    """
    code = normalize_bytecode(code_to_resolve)
    reference = normalize_bytecode(reference)

    if not reference:
        # abstract contracts and interfaces compile to nothing
        return False
    if code == reference:
        return True

    if reference.startswith(LIBRARY_GUARD_PREFIX):
        code = _blank(code, LIBRARY_GUARD_ADDRESS_START)

    code, reference = _blank_library_references(code, reference)

    code = strip_metadata(code)
    reference = strip_metadata(reference)
    if not reference:
        return False

    return code.startswith(reference)
