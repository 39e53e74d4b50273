"""
Runtime configuration for a chat group.
"""
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .conversation import N_MESSAGES

ENV_PREFIX = "CAUSALCHAT_"


@dataclass
class ChatConfig:
    """Settings shared by every peer of a group."""

    n_messages: int = N_MESSAGES     # reply budget per peer
    min_latency: float = 0.0         # seconds, per multicast send
    max_latency: float = 0.01
    seed: Optional[int] = None       # None seeds from the OS
    buffer_capacity: Optional[int] = None  # None means unbounded
    log_level: str = "INFO"

    def __post_init__(self):
        if self.n_messages < 0:
            raise ValueError(f"n_messages must be >= 0, got {self.n_messages}")
        if self.min_latency < 0 or self.max_latency < self.min_latency:
            raise ValueError(f"Invalid latency bounds: [{self.min_latency}, {self.max_latency}]")
        if self.buffer_capacity is not None and self.buffer_capacity <= 0:
            raise ValueError(f"buffer_capacity must be positive, got {self.buffer_capacity}")
        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ChatConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ChatConfig':
        """Build a config from CAUSALCHAT_* variables, defaults for the rest."""
        environ = os.environ if environ is None else environ
        converters = {
            'n_messages': int,
            'min_latency': float,
            'max_latency': float,
            'seed': int,
            'buffer_capacity': int,
            'log_level': str,
        }
        values = {}
        for name, convert in converters.items():
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            try:
                values[name] = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid {ENV_PREFIX}{name.upper()}={raw!r}: {e}") from e
        return cls(**values)
