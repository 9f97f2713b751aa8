"""
Ledger event records.

Every state transition of a contract appends one ``Event`` to the ledger's
append-only log.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


def _jsonable(value: Any) -> Any:
    if isinstance(value, bytes):
        return '0x' + value.hex()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class Event:
    """A structured log record emitted by a contract."""
    name: str
    emitter: str
    block_number: int
    timestamp: int
    log_index: int
    args: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.args[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.args.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "address": self.emitter,
            "blockNumber": self.block_number,
            "timestamp": self.timestamp,
            "logIndex": self.log_index,
            "args": {_camel(k): _jsonable(v) for k, v in self.args.items()},
        }
