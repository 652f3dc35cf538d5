# txlistener/contracts/loader.py
"""
Readers for compiler output.

Two layouts are understood:
- `solc --combined-json abi,bin,bin-runtime,hashes` output (a single file)
- a directory of per-contract JSON artifacts as written by Truffle,
  Hardhat or Foundry
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import msgspec
from msgspec import Struct, field

from ..core.errors import ArtifactError
from ..core.logging import ListenerLogger, log_with_context, INFO, WARNING
from ..decode.abi import function_signature, function_selector
from ..types import CompiledContract


class CombinedJsonEntry(Struct):
    abi: Union[List[Dict[str, Any]], str, None] = None
    interface: Optional[str] = None  # solc < 0.4.20 emits the ABI as a JSON string here
    bin: str = ""
    bin_runtime: str = field(default="", name="bin-runtime")
    hashes: Dict[str, str] = {}


class CombinedJsonOutput(Struct):
    contracts: Dict[str, CombinedJsonEntry]
    version: Optional[str] = None


class ArtifactFile(Struct):
    abi: List[Dict[str, Any]] = []
    contractName: Optional[str] = None
    bytecode: Union[str, Dict[str, Any], None] = None
    deployedBytecode: Union[str, Dict[str, Any], None] = None
    methodIdentifiers: Dict[str, str] = {}


_combined_decoder = msgspec.json.Decoder(type=CombinedJsonOutput)
_artifact_decoder = msgspec.json.Decoder(type=ArtifactFile)


def _logger():
    return ListenerLogger.get_logger('contracts.loader')


def selectors_from_abi(abi: List[Dict[str, Any]]) -> Dict[str, str]:
    hashes = {}
    for entry in abi:
        if entry.get("type", "function") != "function":
            continue
        signature = function_signature(entry)
        hashes[signature] = function_selector(signature)
    return hashes


def _bytecode_object(value: Union[str, Dict[str, Any], None]) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return value.get("object") or ""
    return value


def _parse_abi(entry: CombinedJsonEntry, key: str) -> List[Dict[str, Any]]:
    abi = entry.abi if entry.abi is not None else entry.interface
    if abi is None:
        return []
    if isinstance(abi, str):
        try:
            abi = msgspec.json.decode(abi)
        except msgspec.DecodeError as e:
            raise ArtifactError(f"Invalid ABI JSON for {key}: {e}", {"contract": key}) from e
    return abi


def _add_contract(contracts: Dict[str, CompiledContract], contract: CompiledContract, source: str) -> None:
    if contract.name in contracts:
        log_with_context(_logger(), WARNING, "Duplicate contract name, keeping the first one",
                         contract_name=contract.name, source=source)
        return
    contracts[contract.name] = contract


def load_combined_json(path: Union[str, Path]) -> Dict[str, CompiledContract]:
    path = Path(path)
    try:
        output = _combined_decoder.decode(path.read_bytes())
    except FileNotFoundError as e:
        raise ArtifactError(f"Artifact file not found: {path}", {"path": str(path)}) from e
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        raise ArtifactError(f"Invalid combined JSON in {path}: {e}", {"path": str(path)}) from e

    contracts: Dict[str, CompiledContract] = {}
    for key, entry in output.contracts.items():
        name = key.rsplit(":", 1)[-1]
        abi = _parse_abi(entry, key)
        _add_contract(contracts, CompiledContract(
            name=name,
            abi=abi,
            bytecode=entry.bin,
            runtime_bytecode=entry.bin_runtime,
            function_hashes=entry.hashes or selectors_from_abi(abi),
        ), str(path))

    log_with_context(_logger(), INFO, "Loaded combined JSON artifacts",
                     path=str(path), contract_count=len(contracts))
    return contracts


def load_artifact_file(path: Union[str, Path]) -> CompiledContract:
    path = Path(path)
    try:
        artifact = _artifact_decoder.decode(path.read_bytes())
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        raise ArtifactError(f"Invalid artifact {path}: {e}", {"path": str(path)}) from e

    return CompiledContract(
        name=artifact.contractName or path.stem,
        abi=artifact.abi,
        bytecode=_bytecode_object(artifact.bytecode),
        runtime_bytecode=_bytecode_object(artifact.deployedBytecode),
        function_hashes=artifact.methodIdentifiers or selectors_from_abi(artifact.abi),
    )


def load_artifact_directory(directory: Union[str, Path]) -> Dict[str, CompiledContract]:
    directory = Path(directory)
    if not directory.is_dir():
        raise ArtifactError(f"Artifact directory not found: {directory}", {"path": str(directory)})

    contracts: Dict[str, CompiledContract] = {}
    skipped = 0
    for artifact_path in sorted(directory.rglob("*.json")):
        # hardhat debug files and build info are not artifacts
        if artifact_path.name.endswith(".dbg.json") or "build-info" in artifact_path.parts:
            continue
        try:
            _add_contract(contracts, load_artifact_file(artifact_path), str(artifact_path))
        except ArtifactError as e:
            log_with_context(_logger(), WARNING, "Skipping unreadable artifact",
                             path=str(artifact_path), error=e.message)
            skipped += 1

    log_with_context(_logger(), INFO, "Loaded artifact directory",
                     path=str(directory), contract_count=len(contracts), skipped=skipped)
    return contracts


def load_artifacts(path: Union[str, Path]) -> Dict[str, CompiledContract]:
    path = Path(path)
    if path.is_dir():
        return load_artifact_directory(path)
    return load_combined_json(path)
