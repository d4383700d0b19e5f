"""Top-level container that bundles a whole catalog into a single IR document."""

from __future__ import annotations

from pydantic import BaseModel, model_validator

from .consumables import ConsumableDefinition
from .perks import BossDefinition, ItemCollected, PerkDefinition
from .things import AttributeDefinition, ModDefinition, RarityBucket, ThingTemplate, TierDefinition


class ContentSet(BaseModel):
    """Top-level IR document describing every piece of rollable and buyable content.

    Serialise to JSON for persistence / transport, deserialise to validate and
    then hand off to :class:`~loot_gen.sim.content.registry.ContentRegistry`.
    """

    name: str = "custom"
    """Human-readable catalog name."""

    version: str = "0.1.0"

    tiers: list[TierDefinition] = []
    rarity_buckets: list[RarityBucket] = []
    things: list[ThingTemplate] = []
    attributes: list[AttributeDefinition] = []
    mods: list[ModDefinition] = []
    perks: list[PerkDefinition] = []
    bosses: list[BossDefinition] = []
    consumables: list[ConsumableDefinition] = []

    # -- convenience lookups ------------------------------------------------

    def get_perk(self, perk_id: str) -> PerkDefinition | None:
        """Return the perk with the given id, or ``None``."""
        for perk in self.perks:
            if perk.id == perk_id:
                return perk
        return None

    def get_thing(self, thing_id: str) -> ThingTemplate | None:
        """Return the thing template with the given id, or ``None``."""
        for thing in self.things:
            if thing.id == thing_id:
                return thing
        return None

    # -- validation ---------------------------------------------------------

    @model_validator(mode="after")
    def _validate_unique_ids(self) -> "ContentSet":
        """Reject duplicate ids inside any one catalog."""
        sections = {
            "tier": [t.id for t in self.tiers],
            "thing": [t.id for t in self.things],
            "attribute": [a.id for a in self.attributes],
            "mod": [m.id for m in self.mods],
            "perk": [p.id for p in self.perks],
            "boss": [b.id for b in self.bosses],
            "consumable": [c.id for c in self.consumables],
        }
        for label, ids in sections.items():
            seen: set[str] = set()
            dupes: set[str] = set()
            for item_id in ids:
                if item_id in seen:
                    dupes.add(item_id)
                seen.add(item_id)
            if dupes:
                raise ValueError(f"Duplicate {label} id(s): {', '.join(sorted(dupes))}")
        return self

    @model_validator(mode="after")
    def _validate_references(self) -> "ContentSet":
        """Ensure every id referenced by a definition is defined in this set.

        Tier references are only checked when the set declares tiers, so a
        perk-only content set can still be merged over the default catalog.
        """
        errors: list[str] = []
        tier_ids = {t.id for t in self.tiers}
        thing_ids = {t.id for t in self.things}
        mod_ids = {m.id for m in self.mods}
        perk_ids = {p.id for p in self.perks}
        boss_ids = {b.id for b in self.bosses}

        if tier_ids:
            for thing in self.things:
                if thing.tier not in tier_ids:
                    errors.append(f"thing '{thing.id}': unknown tier {thing.tier!r}")
            for bucket in self.rarity_buckets:
                for tier_id in bucket.weights:
                    if tier_id not in tier_ids:
                        errors.append(f"rarity bucket {bucket.max_round}: unknown tier {tier_id!r}")

        if perk_ids:
            for mod in self.mods:
                if mod.requires_perk is not None and mod.requires_perk not in perk_ids:
                    errors.append(f"mod '{mod.id}': requires unknown perk {mod.requires_perk!r}")

        for perk in self.perks:
            label = f"perk '{perk.id}'"
            for required in perk.required_perks:
                if required not in perk_ids:
                    errors.append(f"{label}: requires unknown perk {required!r}")
            forging = perk.forging
            if forging is not None:
                for ingredient in forging.recipe:
                    if ingredient not in perk_ids:
                        errors.append(f"{label}: recipe uses unknown perk {ingredient!r}")
            if mod_ids:
                for mod_id in list(perk.modify) + perk.guaranteed_mod_flags:
                    if mod_id not in mod_ids:
                        errors.append(f"{label}: modifies unknown mod {mod_id!r}")
            if thing_ids:
                for requirement in perk.unlock_requirements:
                    if isinstance(requirement, ItemCollected) and requirement.item_id not in thing_ids:
                        errors.append(f"{label}: unlock needs unknown thing {requirement.item_id!r}")
            if perk.source is not None and boss_ids and perk.source not in boss_ids:
                errors.append(f"{label}: unknown source boss {perk.source!r}")

        for boss in self.bosses:
            for perk_id in boss.perk_ids:
                if perk_id not in perk_ids:
                    errors.append(f"boss '{boss.id}': unknown perk {perk_id!r}")

        if errors:
            raise ValueError(
                f"Content reference validation failed with {len(errors)} error(s):\n"
                + "\n".join(f"  - {e}" for e in errors)
            )
        return self
