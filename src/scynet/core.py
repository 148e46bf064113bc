"""Run manifest schema and stable hashing helpers."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from scynet.errors import ValidationError
from scynet.io_utils import read_yaml_payload, write_yaml_payload

MANIFEST_SCHEMA_VERSION = 1


class RunManifest(BaseModel):
    """Provenance record written next to every community network output."""

    model_config = ConfigDict(extra="forbid")

    schema_version: int = MANIFEST_SCHEMA_VERSION
    kind: str = "community_network"
    id: str
    created_at: str
    inputs: Dict[str, Any]
    config: Dict[str, Any]
    code: Dict[str, Any]
    counts: Dict[str, int]
    conditions: List[Dict[str, str]] = []
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RunManifest":
        if not isinstance(data, Mapping):
            raise ValidationError("Manifest must be a mapping.")
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid manifest: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump()
        if data.get("notes") is None:
            data.pop("notes", None)
        return data


def load_manifest(path: Union[str, Path]) -> RunManifest:
    path = Path(path)
    if not path.exists():
        raise ValidationError(f"Manifest not found: {path}")
    return RunManifest.from_dict(read_yaml_payload(path))


def dump_manifest(path: Union[str, Path], manifest: RunManifest) -> None:
    write_yaml_payload(Path(path), manifest.to_dict(), sort_keys=True)


def canonicalize(obj: Any, exclude_keys: Optional[Iterable[str]] = None) -> Any:
    exclude = {str(key) for key in exclude_keys or ()}
    return _canonicalize(obj, exclude)


def _canonicalize(obj: Any, exclude_keys: Set[str]) -> Any:
    """Normalize resolved config and input metadata (JSON-like values only)."""
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj

    if isinstance(obj, Mapping):
        items = []
        for key, value in obj.items():
            key_str = str(key)
            if key_str in exclude_keys:
                continue
            items.append((key_str, _canonicalize(value, exclude_keys)))
        items.sort(key=lambda item: item[0])
        return {key: value for key, value in items}

    if isinstance(obj, (list, tuple)):
        return [_canonicalize(item, exclude_keys) for item in obj]

    raise TypeError(f"Unsupported type for canonicalize: {type(obj)!r}")


def stable_hash(
    obj: Any,
    *,
    exclude_keys: Optional[Iterable[str]] = None,
    length: Optional[int] = 16,
) -> str:
    canonical = canonicalize(obj, exclude_keys=exclude_keys)
    payload = json.dumps(
        canonical,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    )
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    if length is None:
        return digest
    if length <= 0:
        raise ValueError("length must be a positive integer or None.")
    return digest[:length]


def file_digest(path: Union[str, Path], *, length: Optional[int] = 16) -> str:
    """sha256 of a file's bytes, truncated like :func:`stable_hash`."""
    digest = hashlib.sha256(Path(path).read_bytes()).hexdigest()
    return digest if length is None else digest[:length]


def make_run_id(
    *,
    inputs: Optional[Mapping[str, Any]] = None,
    config: Optional[Mapping[str, Any]] = None,
    code: Optional[Mapping[str, Any]] = None,
    length: Optional[int] = 16,
) -> str:
    payload = {
        "inputs": inputs or {},
        "config": config or {},
        "code": code or {},
    }
    return stable_hash(payload, length=length)


__all__ = [
    "MANIFEST_SCHEMA_VERSION",
    "RunManifest",
    "canonicalize",
    "dump_manifest",
    "file_digest",
    "load_manifest",
    "make_run_id",
    "stable_hash",
]
