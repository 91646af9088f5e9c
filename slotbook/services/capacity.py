# slotbook/services/capacity.py
"""
Livro de capacidade de uma vaga (slot).

Funções puras: não leem nem gravam no banco. Quem aplica o delta é o motor
de inscrições, dentro da própria transação.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from slotbook.core.errors import InvariantViolation
from slotbook.models.session import Slot


@dataclass(frozen=True)
class SlotOccupancy:
    slot_id: int
    trainer_id: int
    confirmed_count: int
    capacity: Optional[int]
    waitlist_length: int

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and self.confirmed_count >= self.capacity

    @property
    def available(self) -> Optional[int]:
        if self.capacity is None:
            return None
        return max(0, self.capacity - self.confirmed_count)


def is_full(slot: Slot) -> bool:
    if slot.capacity is None:
        return False
    return slot.confirmed_count >= slot.capacity


def apply_delta(slot: Slot, delta: int) -> int:
    """Retorna o novo confirmed_count; não altera o slot."""
    new_count = (slot.confirmed_count or 0) + delta
    if new_count < 0:
        raise InvariantViolation(
            "confirmed_count ficaria negativo",
            slot_id=slot.id, confirmed_count=slot.confirmed_count, delta=delta,
        )
    # decremento em vaga já acima da capacidade só aproxima do limite
    if delta > 0 and slot.capacity is not None and new_count > slot.capacity:
        raise InvariantViolation(
            "confirmed_count excederia a capacidade",
            slot_id=slot.id, confirmed_count=slot.confirmed_count, capacity=slot.capacity, delta=delta,
        )
    return new_count


def check_waitlist_order(positions: Iterable[Optional[int]]) -> None:
    """Posições da fila de espera devem ser exatamente 1..N, sem buracos nem repetição."""
    got = list(positions)
    if sorted(got, key=lambda p: (p is None, p or 0)) != list(range(1, len(got) + 1)):
        raise InvariantViolation("posições da fila fora da sequência 1..N", positions=got)


def occupancy(slot: Slot, waitlist_length: int) -> SlotOccupancy:
    return SlotOccupancy(
        slot_id=slot.id,
        trainer_id=slot.trainer_id,
        confirmed_count=slot.confirmed_count,
        capacity=slot.capacity,
        waitlist_length=waitlist_length,
    )
