"""
Ballot ranking engine - the 25-slot ballot builder

Holds a fixed-length list of ranking slots plus the pool of teams that are
not ranked yet. Each method handles one completed gesture (a drop or a
remove click) and leaves every team in exactly one place: a slot or the pool.

No Flask, no database: the UI layer (or BallotClient) owns an instance and
calls it directly.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_RANK = 25


@dataclass(frozen=True)
class RankItem:
    """A rankable team as the engine sees it (never mutated)"""
    id: int
    name: str
    image: Optional[str] = None

    @classmethod
    def from_team(cls, team) -> "RankItem":
        return cls(id=team.id, name=team.name, image=getattr(team, "image_src", None))

    @classmethod
    def from_dict(cls, data: dict) -> "RankItem":
        return cls(id=int(data["id"]), name=data.get("name") or "", image=data.get("image"))


def _alphabetical(item: RankItem):
    return (item.name.lower(), item.id)


class RankingEngine:
    """Slot array + available pool for one ballot-editing session"""

    def __init__(self, catalog: Iterable[RankItem], capacity: int = MAX_RANK):
        self.capacity = capacity
        self.catalog = {item.id: item for item in catalog}
        self.slots: List[Optional[RankItem]] = [None] * capacity
        self._pool = set(self.catalog)

    @classmethod
    def from_payload(cls, catalog: Iterable[RankItem], rankings) -> "RankingEngine":
        """
        Build an engine from a GET /ballot payload

        Args:
            catalog: every rankable team
            rankings: [{"teamId": ..., "rank": ...}, ...] as returned by the API

        Rows that are not objects are skipped; bad ids/ranks are skipped by reconcile().
        """
        entries = []
        for row in rankings or []:
            if not isinstance(row, dict):
                logger.warning(f"Skipping malformed ranking row: {row!r}")
                continue
            entries.append((row.get("teamId"), row.get("rank")))

        engine = cls(catalog)
        engine.reconcile(entries)
        return engine

    # ------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------

    @property
    def pool(self) -> List[RankItem]:
        """Unranked teams, alphabetical"""
        return sorted((self.catalog[item_id] for item_id in self._pool), key=_alphabetical)

    @property
    def occupied_count(self) -> int:
        return sum(1 for cell in self.slots if cell is not None)

    @property
    def is_full(self) -> bool:
        return self.occupied_count >= self.capacity

    def in_pool(self, item_id: int) -> bool:
        return item_id in self._pool

    def position_of(self, item_id: int) -> Optional[int]:
        """1-based slot holding item_id, or None if it's in the pool"""
        index = self._index_of(item_id)
        return None if index is None else index + 1

    def slot_ids(self) -> List[Optional[int]]:
        return [cell.id if cell is not None else None for cell in self.slots]

    def ranked(self) -> List[Tuple[int, RankItem]]:
        """[(position, item), ...] for occupied slots, best first"""
        return [(index + 1, cell) for index, cell in enumerate(self.slots) if cell is not None]

    def serialize(self) -> List[Tuple[int, int]]:
        """[(item_id, position), ...] for occupied slots; empty slots keep their gap"""
        return [(item.id, position) for position, item in self.ranked()]

    def to_payload(self) -> List[dict]:
        return [{"teamId": item_id, "rank": position} for item_id, position in self.serialize()]

    # ------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------

    def move_to_slot(self, item_id: int, position: int) -> None:
        """
        Drop item_id onto slot `position` (1-based)

        Works for pool -> slot and slot -> slot. A different team already in
        the target slot goes back to the pool. A new arrival into a full
        ballot also pushes the slot-25 team out.
        """
        index = self._slot_index(position)
        if index is None or not self._known(item_id):
            return

        current = self._index_of(item_id)
        if current == index:
            return

        previous = list(self.slots)
        arriving = current is None

        if current is not None:
            self.slots[current] = None

        if self.slots[index] is not None:
            self._displace_to_pool(index)

        # Capacity eviction: only for arrivals from the pool into a full ballot
        last = self.capacity - 1
        if arriving and all(cell is not None for cell in previous) and index != last:
            self._displace_to_pool(last)

        self._place(item_id, index)
        self._settle(previous)

    def reorder_within_slots(self, item_id: int, position: int) -> None:
        self.move_to_slot(item_id, position)

    def move_to_pool(self, item_id: int) -> None:
        """Take item_id out of its slot. No-op if it's already in the pool."""
        if not self._known(item_id):
            return

        index = self._index_of(item_id)
        if index is None:
            return

        previous = list(self.slots)
        self._displace_to_pool(index)
        self._settle(previous)

    def remove(self, item_id: int) -> None:
        self.move_to_pool(item_id)

    def reconcile(self, entries) -> None:
        """
        Rebuild state from saved (item_id, position) pairs

        Starts from an empty ballot and replays entries in position order.
        Positions are taken as given, so capacity eviction never applies here;
        a later entry for the same slot pushes the earlier team to the pool,
        and a repeated team keeps only its last position.
        """
        self.slots = [None] * self.capacity
        self._pool = set(self.catalog)

        valid = []
        for entry in entries or []:
            try:
                item_id, position = entry
            except (TypeError, ValueError):
                logger.warning(f"Skipping malformed ranking entry: {entry!r}")
                continue

            index = self._slot_index(position)
            if index is None:
                logger.warning(f"Skipping ranking entry with invalid rank: {entry!r}")
                continue
            if item_id is None or isinstance(item_id, bool):
                logger.warning(f"Skipping ranking entry with no team: {entry!r}")
                continue
            try:
                item_id = int(item_id)
            except (TypeError, ValueError):
                logger.warning(f"Skipping ranking entry with invalid team id: {entry!r}")
                continue
            if item_id not in self.catalog:
                logger.warning(f"Skipping ranking entry for unknown team {item_id}")
                continue
            valid.append((index, item_id))

        # sorted() is stable: duplicates keep input order
        for index, item_id in sorted(valid, key=lambda pair: pair[0]):
            current = self._index_of(item_id)
            if current is not None and current != index:
                self.slots[current] = None
            occupant = self.slots[index]
            if occupant is not None and occupant.id != item_id:
                self._displace_to_pool(index)
            self._place(item_id, index)

        self._pool = set(self.catalog) - {cell.id for cell in self.slots if cell is not None}
        logger.debug(f"Reconciled {len(valid)} entries into {self.occupied_count} ranked teams")

    # ------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------

    def _known(self, item_id) -> bool:
        if item_id in self.catalog:
            return True
        logger.warning(f"Ignoring move for unknown team {item_id!r}")
        return False

    def _slot_index(self, position) -> Optional[int]:
        if isinstance(position, bool):
            return None
        if not isinstance(position, int):
            # "3" and 3.0 are fine; 2.9 is not a slot
            try:
                number = float(position)
            except (TypeError, ValueError):
                return None
            if not number.is_integer():
                logger.debug(f"Ignoring fractional slot {position!r}")
                return None
            position = int(number)
        if 1 <= position <= self.capacity:
            return position - 1
        logger.debug(f"Ignoring out-of-range slot {position}")
        return None

    def _index_of(self, item_id) -> Optional[int]:
        for index, cell in enumerate(self.slots):
            if cell is not None and cell.id == item_id:
                return index
        return None

    def _place(self, item_id: int, index: int) -> None:
        self.slots[index] = self.catalog[item_id]
        self._pool.discard(item_id)

    def _displace_to_pool(self, index: int) -> None:
        """Empty slot `index`, sending its team back to the pool"""
        item = self.slots[index]
        if item is None:
            return
        self.slots[index] = None
        self._pool.add(item.id)
        logger.debug(f"Returned {item.name} from slot {index + 1} to the pool")

    def _settle(self, previous: List[Optional[RankItem]]) -> None:
        """Make sure the old slot-25 team and anything past the last slot ends up somewhere"""
        last = self.capacity - 1
        before = previous[last] if len(previous) > last else None
        if before is not None and self._index_of(before.id) is None and before.id not in self._pool:
            logger.warning(f"Slot {self.capacity} team {before.name} was dropped; returning it to the pool")
            self._pool.add(before.id)

        while len(self.slots) > self.capacity:
            extra = self.slots.pop()
            if extra is not None and self._index_of(extra.id) is None:
                self._pool.add(extra.id)
