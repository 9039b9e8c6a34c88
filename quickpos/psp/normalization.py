"""
Status and amount normalization shared by all provider adapters.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Union

from quickpos.schemas_pkg.payments import PaymentStatus


class StatusTable:
    """
    Finite map from a provider's raw status values to PaymentStatus.

    Anything not in the table (including None and non-scalar values)
    normalizes to PaymentStatus.UNKNOWN; normalize() never raises.
    """

    def __init__(self, mapping: Mapping[str, Union[PaymentStatus, str]], case_sensitive: bool = True):
        self.case_sensitive = case_sensitive
        self._mapping = MappingProxyType(
            {self._key(str(raw)): PaymentStatus(status) for raw, status in mapping.items()}
        )

    def _key(self, raw: str) -> str:
        return raw if self.case_sensitive else raw.lower()

    def normalize(self, raw: Any) -> PaymentStatus:
        if isinstance(raw, bool) or raw is None:
            return PaymentStatus.UNKNOWN
        if isinstance(raw, int):
            raw = str(raw)
        if not isinstance(raw, str):
            return PaymentStatus.UNKNOWN
        return self._mapping.get(self._key(raw), PaymentStatus.UNKNOWN)

    def __contains__(self, raw: object) -> bool:
        return isinstance(raw, str) and self._key(raw) in self._mapping

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)


@dataclass(frozen=True)
class AmountUnit:
    """
    Conversion between major currency units and what goes on the wire.

    multiplier: wire units per major unit (100 for cents, 10 for Toman->Rial,
                1 for providers quoting major units)
    places:     decimal places kept on the wire (0 means whole minor units)
    """

    multiplier: int = 1
    places: int = 0

    @property
    def _quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.places)

    def to_wire(self, amount: Union[Decimal, str, int, float]) -> Union[int, Decimal]:
        """Major units -> wire amount, rounded half-up to ``places``."""
        value = (Decimal(str(amount)) * self.multiplier).quantize(self._quantum, rounding=ROUND_HALF_UP)
        return int(value) if self.places == 0 else value

    def format_wire(self, amount: Union[Decimal, str, int, float]) -> str:
        """Wire amount as the fixed-point string form-post providers expect."""
        value = self.to_wire(amount)
        return str(value) if isinstance(value, int) else format(value, "f")

    def from_wire(self, value: Any) -> Optional[Decimal]:
        """
        Wire amount -> major units, exact inverse of the multiplier, no rounding.
        Returns None when the provider sent nothing usable.
        """
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            wire = Decimal(str(value).strip())
        except InvalidOperation:
            return None
        if not wire.is_finite():
            return None
        return wire / self.multiplier


MINOR_UNITS = AmountUnit(multiplier=100, places=0)
MAJOR_UNITS = AmountUnit(multiplier=1, places=2)
WHOLE_UNITS = AmountUnit(multiplier=1, places=0)
