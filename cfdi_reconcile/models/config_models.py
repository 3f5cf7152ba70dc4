from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

"""Configuration dataclasses for the reconciliation run.

These are built by ``cfdi_reconcile.config.loader`` (from YAML or defaults)
and passed down explicitly; nothing here is module-level mutable state.
"""

__all__ = [
    "DEFAULT_HEADER_LABELS",
    "HeaderMapping",
    "CrossCheckConfig",
    "ReconcileSettings",
]

DEFAULT_HEADER_LABELS: Mapping[str, str] = MappingProxyType({
    "cfdi_id": "ID",
    "uuid": "UUID",
})


@dataclass(frozen=True)
class HeaderMapping:
    """Record field name -> spreadsheet header label."""
    labels: Mapping[str, str] = field(default_factory=lambda: DEFAULT_HEADER_LABELS)

    def __post_init__(self) -> None:
        # private read-only copy
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    def label_for(self, field_name: str) -> str:
        try:
            return self.labels[field_name]
        except KeyError:
            raise KeyError(f"no header label configured for field '{field_name}'") from None


@dataclass(frozen=True)
class CrossCheckConfig:
    """Advisory key-set lookup for the first records of every JSON file."""
    enabled: bool = True
    sample_size: int = 5


@dataclass(frozen=True)
class ReconcileSettings:
    """Root configuration object for a run."""
    key_field: str = "cfdi_id"
    headers: HeaderMapping = field(default_factory=HeaderMapping)
    cross_check: CrossCheckConfig = field(default_factory=CrossCheckConfig)
    progress_every: int = 100_000  # rows between key-extraction checkpoints
    extensions: tuple[str, ...] = (".json",)

    @property
    def key_header(self) -> str:
        return self.headers.label_for(self.key_field)
