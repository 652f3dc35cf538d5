# txlistener/types/new.py

from typing import NewType

HexStr = NewType('HexStr', str)
EvmHash = NewType('EvmHash', str)
EvmAddress = NewType('EvmAddress', str)
Selector = NewType('Selector', str)  # 8 hex chars, no 0x
