"""In-memory synthesis tree: observations -> harms -> criteria -> strategies.

Lookups are linear scans over the four collections; a project holds tens to
low hundreds of nodes. Observation order is a float ``sort_order`` so a
node can be inserted between two siblings by taking the midpoint, without
renumbering the rest.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence, TypeVar

from synthesis.core.schemas_synthesis import Criterion, Harm, Observation, Strategy

T = TypeVar("T")


def midpoint_order(before: float, after: float | None) -> float:
    """Order value strictly between ``before`` and ``after`` (or one past ``before``)."""
    if after is None:
        return before + 1.0
    return (before + after) / 2.0


def move_item(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Standard array move: remove at ``from_index``, insert at ``to_index``."""
    result = list(items)
    if not result:
        return result
    to_index = max(0, min(to_index, len(result) - 1))
    moved = result.pop(from_index)
    result.insert(to_index, moved)
    return result


def _observation_sort_key(obs: Observation) -> tuple:
    return (obs.sort_order is None, obs.sort_order or 0.0, obs.created_at)


@dataclass
class SynthesisTree:
    observations: list[Observation] = field(default_factory=list)
    harms: list[Harm] = field(default_factory=list)
    criteria: list[Criterion] = field(default_factory=list)
    strategies: list[Strategy] = field(default_factory=list)

    @classmethod
    def from_rows(
        cls,
        observations: list[dict[str, Any]],
        harms: list[dict[str, Any]],
        criteria: list[dict[str, Any]],
        strategies: list[dict[str, Any]],
    ) -> "SynthesisTree":
        return cls(
            observations=[Observation(**row) for row in observations],
            harms=[Harm(**row) for row in harms],
            criteria=[Criterion(**row) for row in criteria],
            strategies=[Strategy(**row) for row in strategies],
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def ordered_observations(self) -> list[Observation]:
        """Observations by ascending sort order, ties broken by creation time."""
        return sorted(self.observations, key=_observation_sort_key)

    def observation(self, observation_id: str) -> Observation | None:
        return next((o for o in self.observations if o.id == observation_id), None)

    def harm(self, harm_id: str) -> Harm | None:
        return next((h for h in self.harms if h.id == harm_id), None)

    def criterion(self, criterion_id: str) -> Criterion | None:
        return next((c for c in self.criteria if c.id == criterion_id), None)

    def strategy(self, strategy_id: str) -> Strategy | None:
        return next((s for s in self.strategies if s.id == strategy_id), None)

    def harms_for(self, observation_id: str) -> list[Harm]:
        """Harms whose observation set contains ``observation_id``, in creation order."""
        return sorted(
            (h for h in self.harms if observation_id in h.observation_ids),
            key=lambda h: h.created_at,
        )

    def criteria_for(self, harm_id: str) -> list[Criterion]:
        return [c for c in self.criteria if c.harm_id == harm_id]

    def strategies_for(self, criterion_id: str) -> list[Strategy]:
        return [s for s in self.strategies if s.criterion_id == criterion_id]

    def observation_for(self, harm: Harm) -> Observation | None:
        """First existing observation a harm derives from; None when orphaned."""
        for obs in self.ordered_observations():
            if obs.id in harm.observation_ids:
                return obs
        return None

    def harm_for(self, criterion: Criterion) -> Harm | None:
        return self.harm(criterion.harm_id)

    def reachable_harms(self) -> list[Harm]:
        """Harms with at least one existing observation (orphans are skipped, not errors)."""
        return [h for h in self.harms if self.observation_for(h) is not None]

    def observations_text_for(self, harm: Harm) -> str:
        return "\n".join(o.content for o in self.ordered_observations() if o.id in harm.observation_ids)

    def descendant_ids(self, observation_id: str) -> tuple[set[str], set[str], set[str]]:
        """Harm, criterion and strategy ids reachable only through ``observation_id``."""
        harm_ids = {h.id for h in self.harms if h.observation_ids == [observation_id]}
        criterion_ids = {c.id for c in self.criteria if c.harm_id in harm_ids}
        strategy_ids = {s.id for s in self.strategies if s.criterion_id in criterion_ids}
        return harm_ids, criterion_ids, strategy_ids

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def missing_orders(self) -> dict[str, float]:
        """
        Index-based orders for every observation when any sibling lacks one
        or two siblings share one.

        Returns an empty dict when every sibling has a distinct sort order.
        """
        ordered = self.ordered_observations()
        orders = [o.sort_order for o in ordered]
        if None not in orders and len(set(orders)) == len(orders):
            return {}
        return {o.id: float(i) for i, o in enumerate(ordered)}

    def next_order(self, reserved: Sequence[float] = ()) -> float | None:
        """
        Order for a new last sibling; None keeps creation-time ordering for legacy rows.

        ``reserved`` holds orders already promised to creates still in flight.
        """
        if any(o.sort_order is None for o in self.observations):
            return None
        orders = [o.sort_order for o in self.observations] + list(reserved)
        if not orders:
            return 0.0
        return max(orders) + 1.0

    def order_after(self, observation_id: str, reserved: Sequence[float] = ()) -> float:
        """
        Midpoint between an observation and the next taken position after it.

        Requires every sibling to carry a sort order (see ``missing_orders``).
        Orders in ``reserved`` count as taken, so overlapping inserts after
        the same sibling nest instead of colliding.
        """
        ordered = self.ordered_observations()
        index = next(i for i, o in enumerate(ordered) if o.id == observation_id)
        source = ordered[index]
        later = [o.sort_order for o in ordered[index + 1 :] if o.sort_order > source.sort_order]
        later.extend(r for r in reserved if r > source.sort_order)
        return midpoint_order(source.sort_order, min(later) if later else None)

    def apply_orders(self, orders: dict[str, float]) -> None:
        self.observations = [
            o.model_copy(update={"sort_order": orders[o.id]}) if o.id in orders else o
            for o in self.observations
        ]
