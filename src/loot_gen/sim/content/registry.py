"""Content registry -- loads and serves tiers, thing templates, attributes,
mods, perks, bosses and consumables for the loot engine.

Default content is loaded from JSON files shipped in ``loot_gen/data/default/``.
Custom content is loaded from :class:`ContentSet` IR objects.

Catalog files may use the legacy perk shapes of older game builds (bare
numbers, ``{"add": 3}`` objects, camelCase stat names, ``requires`` /
``requireAugment`` gates, ``forgeRecipe`` blocks, ``guaranteed_mod_x``
flags).  Every such shape is normalised here, once, so the aggregator only
ever sees typed :class:`StatOp` / :class:`ModifyOp` values.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from loot_gen.ir.consumables import ConsumableDefinition, ConsumableEffect
from loot_gen.ir.content_set import ContentSet
from loot_gen.ir.perks import (
    GUARANTEED_MOD_PREFIX,
    BonusTriggerCondition,
    BossDefinition,
    ForgingCondition,
    ItemCollected,
    ModifyOp,
    PerkDefinition,
    PerkProperties,
    RequiresPerkCondition,
    StatOp,
    StatOpKind,
    StatThreshold,
    UnlockCondition,
)
from loot_gen.ir.things import (
    AttributeDefinition,
    ModDefinition,
    RarityBucket,
    ThingTemplate,
    TierDefinition,
)

logger = logging.getLogger(__name__)

# Default paths relative to the package.
_DATA_DIR = Path(__file__).resolve().parents[2] / "data" / "default"  # src/loot_gen/sim/content -> loot_gen
_DEFAULT_TIERS_PATH = _DATA_DIR / "tiers.json"
_DEFAULT_THINGS_PATH = _DATA_DIR / "things.json"
_DEFAULT_ATTRIBUTES_PATH = _DATA_DIR / "attributes.json"
_DEFAULT_MODS_PATH = _DATA_DIR / "mods.json"
_DEFAULT_PERKS_PATH = _DATA_DIR / "perks.json"
_DEFAULT_BOSSES_PATH = _DATA_DIR / "bosses.json"
_DEFAULT_CONSUMABLES_PATH = _DATA_DIR / "consumables.json"


# ---------------------------------------------------------------------------
# Legacy-shape normalisation
# ---------------------------------------------------------------------------

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Stat names renamed between game builds.
_STAT_ALIASES: dict[str, str] = {
    "value_multiplier": "value_bonus",
    "chip_multiplier": "chip_bonus",
    "cash_multiplier": "cash_bonus",
    "chips_end_wave": "chips_end_round",
    "wave": "round",
}

_KIND_ALIASES: dict[str, StatOpKind] = {
    "add": StatOpKind.ADD,
    "sub": StatOpKind.SUB,
    "subtract": StatOpKind.SUB,
    "multi": StatOpKind.MULTI,
    "mult": StatOpKind.MULTI,
    "multiply": StatOpKind.MULTI,
    "div": StatOpKind.DIV,
    "divide": StatOpKind.DIV,
    "set": StatOpKind.SET,
}

# Order in which the keys of a legacy ``{"add": 3}`` object are honoured.
_LEGACY_OP_KEYS = ("add", "subtract", "multiply", "divide", "set")


def normalize_stat_name(name: str) -> str:
    """Convert a catalog stat name to its snake_case snapshot field."""
    snake = _CAMEL_BOUNDARY.sub("_", name).lower()
    return _STAT_ALIASES.get(snake, snake)


def _parse_stat_op(stat: str, raw: Any) -> StatOp:
    """Turn one catalog stat entry into a :class:`StatOp`.

    Accepts the typed shape (``{"type": "add", "value": 1}``), the legacy
    object shape (``{"add": 1}``) and bare numbers, whose meaning depends on
    the stat name prefix (``multi*``/``divide*`` multiply, ``set*`` sets,
    anything else adds).
    """
    if isinstance(raw, bool):
        raise ValueError(f"stat {stat!r}: boolean is not a valid stat value")

    if isinstance(raw, (int, float)):
        if stat.startswith(("multi", "divide")):
            return StatOp(kind=StatOpKind.MULTI, value=raw)
        if stat.startswith("set"):
            return StatOp(kind=StatOpKind.SET, value=raw)
        return StatOp(kind=StatOpKind.ADD, value=raw)

    if not isinstance(raw, dict):
        raise ValueError(f"stat {stat!r}: unsupported value {raw!r}")

    if "type" in raw or "kind" in raw:
        kind_name = str(raw.get("type", raw.get("kind"))).lower()
        kind = _KIND_ALIASES.get(kind_name)
        if kind is None:
            raise ValueError(f"stat {stat!r}: unknown operation {kind_name!r}")
        return StatOp(kind=kind, value=raw.get("value", 0))

    present = [key for key in _LEGACY_OP_KEYS if key in raw]
    if not present:
        raise ValueError(f"stat {stat!r}: no operation in {raw!r}")
    if len(present) > 1:
        logger.warning(
            "Stat %r declares several operations %s; only %r is kept", stat, present, present[0]
        )
    key = present[0]
    return StatOp(kind=_KIND_ALIASES[key], value=raw[key])


def _parse_stat_block(raw: dict[str, Any] | None) -> dict[str, StatOp]:
    """Parse a ``{stat: op}`` mapping, skipping the nested ``modify`` block."""
    block: dict[str, StatOp] = {}
    for name, value in (raw or {}).items():
        if name == "modify":
            continue
        stat = normalize_stat_name(name)
        block[stat] = _parse_stat_op(stat, value)
    return block


def _parse_modify_op(mod_id: str, raw: Any) -> ModifyOp:
    """Turn one ``modify`` entry into a :class:`ModifyOp`.

    A bare number is a rarity multiplier, as in the old
    ``mod_rarity_modifiers`` tables.
    """
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return ModifyOp(multi=raw)
    if not isinstance(raw, dict):
        raise ValueError(f"modify {mod_id!r}: unsupported value {raw!r}")

    if "type" in raw:
        kind = _KIND_ALIASES.get(str(raw["type"]).lower())
        value = raw.get("value")
        guaranteed = bool(raw.get("guaranteed", False))
        if kind is StatOpKind.SET:
            return ModifyOp(guaranteed=guaranteed, set=value)
        if kind is StatOpKind.ADD:
            return ModifyOp(guaranteed=guaranteed, value=value)
        if kind is StatOpKind.SUB:
            return ModifyOp(guaranteed=guaranteed, value=-value if value is not None else None)
        if kind is StatOpKind.MULTI:
            return ModifyOp(guaranteed=guaranteed, multi=value)
        if kind is StatOpKind.DIV:
            return ModifyOp(guaranteed=guaranteed, div=value)
        raise ValueError(f"modify {mod_id!r}: unknown operation {raw['type']!r}")

    return ModifyOp(**raw)


def _parse_modify_block(raw: dict[str, Any]) -> dict[str, ModifyOp]:
    """Collect ``modify`` entries from every place a catalog may put them."""
    merged: dict[str, Any] = {}
    merged.update(raw.get("mod_rarity_modifiers") or {})
    merged.update((raw.get("stats") or {}).get("modify") or {})
    merged.update((raw.get("attributes") or {}).get("modify") or {})
    merged.update(raw.get("modify") or {})
    return {mod_id: _parse_modify_op(mod_id, value) for mod_id, value in merged.items()}


def _parse_special(raw: Any) -> list[str]:
    """Normalise ``special`` (string, list or legacy dict) into flag strings."""
    if raw is None:
        return []
    if isinstance(raw, str):
        flags = [raw]
    elif isinstance(raw, dict):
        flags = list(raw.keys())
    else:
        flags = list(raw)

    normalized: list[str] = []
    for flag in flags:
        if flag.startswith("guaranteed_mod_"):
            flag = GUARANTEED_MOD_PREFIX + flag[len("guaranteed_mod_"):]
        if flag not in normalized:
            normalized.append(flag)
    return normalized


def _as_list(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    return list(raw)


def _parse_requirement(raw: dict[str, Any]) -> StatThreshold | ItemCollected:
    kind = raw.get("type")
    if kind == "item_collected":
        return ItemCollected(item_id=raw.get("item_id", raw.get("itemId")))
    if kind == "stat_threshold":
        return StatThreshold(
            stat=normalize_stat_name(raw["stat"]),
            threshold=raw.get("threshold", 0),
            compare="less" if raw.get("compare") == "less" else "at_least",
        )
    raise ValueError(f"unknown requirement type {kind!r}")


def _parse_conditions(raw: dict[str, Any]) -> list:
    """Parse every condition shape, including legacy top-level gates."""
    conditions: list = []
    for cond in raw.get("conditions") or []:
        kind = cond.get("type")
        if kind == "unlock":
            inner = cond.get("requirement", cond.get("condition"))
            conditions.append(UnlockCondition(requirement=_parse_requirement(inner)))
        elif kind in ("requires_perk", "requireAugment", "requires_augment", "requirePerk"):
            perk_ids = cond.get("perk_ids", cond.get("perkId", cond.get("augmentId")))
            conditions.append(RequiresPerkCondition(perk_ids=_as_list(perk_ids)))
        elif kind == "bonus_trigger":
            inner = cond.get("requirement", cond.get("condition")) or {}
            bonus = cond.get("bonus", inner.get("bonus"))
            conditions.append(
                BonusTriggerCondition(
                    requirement=_parse_requirement(inner),
                    bonus=_parse_stat_block(bonus),
                )
            )
        elif kind == "forging":
            conditions.append(
                ForgingCondition(recipe=_as_list(cond.get("recipe")), cash=cond.get("cash", 0))
            )
        else:
            raise ValueError(f"unknown condition type {kind!r}")

    # Legacy top-level gates.
    if raw.get("requires"):
        conditions.append(RequiresPerkCondition(perk_ids=_as_list(raw["requires"])))
    recipe = raw.get("forgeRecipe")
    if raw.get("forgeable") and recipe:
        conditions.append(
            ForgingCondition(recipe=_as_list(recipe.get("perks")), cash=recipe.get("cash", 0))
        )
    return conditions


def _parse_properties(raw: dict[str, Any]) -> PerkProperties:
    """Merge the ``properties`` block with legacy top-level properties."""
    props: dict[str, Any] = dict(raw.get("properties") or {})

    def pick(*keys: str) -> Any:
        for key in keys:
            if key in props:
                return props[key]
            if key in raw:
                return raw[key]
        return None

    stack = pick("stack", "maxStacks", "max_stacks")
    shop_limit = pick("shop_limit", "shopLimit")
    round_window = props.get("round") or {}
    set_bonuses_raw = pick("set_bonuses", "setBonuses") or {}

    return PerkProperties(
        stack=stack if stack else 1,
        set=pick("set"),
        set_bonuses={
            int(threshold): _parse_stat_block(block)
            for threshold, block in set_bonuses_raw.items()
        },
        conflict=_as_list(pick("conflict")),
        overwrite=_as_list(pick("overwrite", "overwrites")),
        shop_limit=shop_limit if shop_limit else 1,
        round_min=pick("round_min") if pick("round_min") is not None else round_window.get("min"),
        round_max=pick("round_max") if pick("round_max") is not None else round_window.get("max"),
        subperk=bool(pick("subperk", "subaugment") or raw.get("type") == "subperk"),
        hidden=bool(pick("hidden")),
    )


def _parse_perk_definition(raw: dict[str, Any], *, source: str | None = None) -> PerkDefinition:
    """Parse a raw JSON dict (current or legacy shape) into a PerkDefinition."""
    stats_raw = raw.get("stats")
    if stats_raw is None:
        stats_raw = raw.get("attributes")

    return PerkDefinition(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        description=raw.get("description", ""),
        cost=raw.get("cost", 0),
        tier=raw.get("tier", raw.get("rarity", "common")),
        stats=_parse_stat_block(stats_raw),
        modify=_parse_modify_block(raw),
        properties=_parse_properties(raw),
        conditions=_parse_conditions(raw),
        special=_parse_special(raw.get("special")),
        source=raw.get("source", source),
    )


def _parse_mod_definition(raw: dict[str, Any]) -> ModDefinition:
    return ModDefinition(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        value=raw.get("value", raw.get("modValue", 0.0)),
        rarity=raw.get("rarity", 10.0),
        requires_perk=raw.get("requires_perk", raw.get("requiresPerk")),
        description=raw.get("description", ""),
        color=raw.get("color"),
    )


def _parse_attribute_definition(raw: dict[str, Any]) -> AttributeDefinition:
    return AttributeDefinition(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        value=raw.get("value", raw.get("modValue", 1.0)),
        rarity=raw.get("rarity", 10.0),
        color=raw.get("color"),
    )


def _parse_thing_template(raw: dict[str, Any]) -> ThingTemplate:
    # Legacy templates store their in-tier weight as a numeric ``rarity``.
    weight = raw.get("weight")
    if weight is None and isinstance(raw.get("rarity"), (int, float)):
        weight = raw["rarity"]
    return ThingTemplate(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        tier=raw["tier"],
        base_value=raw.get("base_value", raw.get("baseValue", 0.0)),
        rarity_multiplier=raw.get("rarity_multiplier", raw.get("rarityMultiplier", 1.0)),
        weight=weight if weight is not None else 1.0,
        color=raw.get("color"),
    )


def _read_json(path: str | Path | None, default: Path) -> Any:
    path = Path(path) if path is not None else default
    with open(path) as f:
        return json.load(f)


class ContentRegistry:
    """Loads and serves every catalog the loot engine reads.

    The registry is the single source of truth for content during a run.
    It merges the default catalog with any custom content loaded from a
    :class:`ContentSet`.

    Usage::

        registry = ContentRegistry()
        registry.load_defaults()

        tier = registry.get_tier("legendary")
        perk = registry.get_perk("nazar")
        boss = registry.get_boss_for_round(5)
    """

    def __init__(self) -> None:
        self.tiers: dict[str, TierDefinition] = {}
        self.rarity_buckets: list[RarityBucket] = []
        self.things: dict[str, ThingTemplate] = {}
        self.attributes: dict[str, AttributeDefinition] = {}
        self.mods: dict[str, ModDefinition] = {}
        self.perks: dict[str, PerkDefinition] = {}
        self.bosses: dict[str, BossDefinition] = {}
        self.consumables: dict[str, ConsumableDefinition] = {}

    # ------------------------------------------------------------------
    # Default content loading
    # ------------------------------------------------------------------

    def load_defaults(self) -> None:
        """Load every default catalog."""
        self.load_default_tiers()
        self.load_default_things()
        self.load_default_attributes()
        self.load_default_mods()
        self.load_default_perks()
        self.load_default_bosses()
        self.load_default_consumables()

    def load_default_tiers(self, path: str | Path | None = None) -> None:
        """Load the tier ladder and the per-round rarity buckets.

        Parameters
        ----------
        path:
            Path to the JSON file.  Defaults to ``data/default/tiers.json``
            inside the package.
        """
        raw = _read_json(path, _DEFAULT_TIERS_PATH)
        for raw_tier in raw.get("tiers", []):
            if "_section" in raw_tier:
                continue  # Skip organizational section markers
            tier = TierDefinition(**raw_tier)
            self.tiers[tier.id] = tier
        buckets = [RarityBucket(**b) for b in raw.get("rarity_buckets", [])]
        if buckets:
            self.rarity_buckets = buckets

    def load_default_things(self, path: str | Path | None = None) -> None:
        """Load thing templates.

        Parameters
        ----------
        path:
            Path to the JSON file.  Defaults to ``data/default/things.json``.
        """
        for raw in _read_json(path, _DEFAULT_THINGS_PATH):
            if "_section" in raw:
                continue  # Skip organizational section markers
            thing = _parse_thing_template(raw)
            self.things[thing.id] = thing

    def load_default_attributes(self, path: str | Path | None = None) -> None:
        """Load size attributes.  Defaults to ``data/default/attributes.json``."""
        for raw in _read_json(path, _DEFAULT_ATTRIBUTES_PATH):
            if "_section" in raw:
                continue  # Skip organizational section markers
            attribute = _parse_attribute_definition(raw)
            self.attributes[attribute.id] = attribute

    def load_default_mods(self, path: str | Path | None = None) -> None:
        """Load mods.  Defaults to ``data/default/mods.json``."""
        for raw in _read_json(path, _DEFAULT_MODS_PATH):
            if "_section" in raw:
                continue  # Skip organizational section markers
            mod = _parse_mod_definition(raw)
            self.mods[mod.id] = mod

    def load_default_perks(self, path: str | Path | None = None) -> None:
        """Load shop and forgeable perks.

        Parameters
        ----------
        path:
            Path to the JSON file.  Defaults to ``data/default/perks.json``.
            Entries may use any of the legacy perk shapes.
        """
        for raw in _read_json(path, _DEFAULT_PERKS_PATH):
            if "_section" in raw:
                continue  # Skip organizational section markers
            perk = _parse_perk_definition(raw)
            self.perks[perk.id] = perk

    def load_default_bosses(self, path: str | Path | None = None) -> None:
        """Load bosses together with their exclusive perks.

        Each boss entry carries a ``perks`` list; those perks are registered
        with ``source`` set to the boss id and the boss's ``perk_ids`` are
        derived from them.
        """
        for raw in _read_json(path, _DEFAULT_BOSSES_PATH):
            if "_section" in raw:
                continue  # Skip organizational section markers
            perk_ids: list[str] = list(raw.get("perk_ids", []))
            for raw_perk in raw.get("perks", []):
                perk = _parse_perk_definition(raw_perk, source=raw["id"])
                self.perks[perk.id] = perk
                if perk.id not in perk_ids:
                    perk_ids.append(perk.id)
            boss = BossDefinition(
                id=raw["id"],
                name=raw["name"],
                description=raw.get("description", ""),
                round=raw.get("round", raw.get("wave")),
                perk_ids=perk_ids,
            )
            self.bosses[boss.id] = boss

    def load_default_consumables(self, path: str | Path | None = None) -> None:
        """Load consumables.  Defaults to ``data/default/consumables.json``."""
        for raw in _read_json(path, _DEFAULT_CONSUMABLES_PATH):
            if "_section" in raw:
                continue  # Skip organizational section markers
            effect = raw.get("effect")
            if effect not in {e.value for e in ConsumableEffect}:
                logger.warning("Skipping consumable %r with unsupported effect %r", raw.get("id"), effect)
                continue
            consumable = ConsumableDefinition(
                id=raw["id"],
                name=raw["name"],
                description=raw.get("description", ""),
                cost=raw.get("cost", 0),
                effect=ConsumableEffect(effect),
                value=raw.get("value", 1),
                tier=raw.get("tier", raw.get("rarity", "common")),
            )
            self.consumables[consumable.id] = consumable

    # ------------------------------------------------------------------
    # Custom content loading
    # ------------------------------------------------------------------

    def load_content_set(self, content_set: ContentSet) -> None:
        """Load custom content from a :class:`ContentSet` IR.

        Definitions are added alongside the defaults.  If a custom
        definition has the same ``id`` as a default one, the custom version
        takes precedence.  Non-empty ``rarity_buckets`` replace the default
        buckets wholesale.

        Parameters
        ----------
        content_set:
            A validated ContentSet IR object.
        """
        for tier in content_set.tiers:
            self.tiers[tier.id] = tier
        if content_set.rarity_buckets:
            self.rarity_buckets = list(content_set.rarity_buckets)
        for thing in content_set.things:
            self.things[thing.id] = thing
        for attribute in content_set.attributes:
            self.attributes[attribute.id] = attribute
        for mod in content_set.mods:
            self.mods[mod.id] = mod
        for perk in content_set.perks:
            self.perks[perk.id] = perk
        for boss in content_set.bosses:
            self.bosses[boss.id] = boss
        for consumable in content_set.consumables:
            self.consumables[consumable.id] = consumable

    def as_content_set(self, name: str = "registry") -> ContentSet:
        """Bundle everything currently loaded into a validated :class:`ContentSet`.

        Raises
        ------
        pydantic.ValidationError
            If any definition references an id that is not loaded.
        """
        return ContentSet(
            name=name,
            tiers=list(self.tiers.values()),
            rarity_buckets=list(self.rarity_buckets),
            things=list(self.things.values()),
            attributes=list(self.attributes.values()),
            mods=list(self.mods.values()),
            perks=list(self.perks.values()),
            bosses=list(self.bosses.values()),
            consumables=list(self.consumables.values()),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_tier(self, tier_id: str) -> TierDefinition | None:
        """Return the :class:`TierDefinition` for *tier_id*, or ``None``."""
        return self.tiers.get(tier_id)

    def tier_order(self, tier_id: str) -> int:
        """Return the ladder position of *tier_id*; unknown tiers sort lowest."""
        tier = self.tiers.get(tier_id)
        return tier.order if tier is not None else -1

    def ordered_tiers(self) -> list[TierDefinition]:
        """Return all tiers, commonest first."""
        return sorted(self.tiers.values(), key=lambda t: t.order)

    def get_thing(self, thing_id: str) -> ThingTemplate | None:
        """Return the :class:`ThingTemplate` for *thing_id*, or ``None``."""
        return self.things.get(thing_id)

    def get_mod(self, mod_id: str) -> ModDefinition | None:
        """Return the :class:`ModDefinition` for *mod_id*, or ``None``."""
        return self.mods.get(mod_id)

    def get_perk(self, perk_id: str) -> PerkDefinition | None:
        """Return the :class:`PerkDefinition` for *perk_id*, or ``None``."""
        return self.perks.get(perk_id)

    def get_boss(self, boss_id: str) -> BossDefinition | None:
        """Return the :class:`BossDefinition` for *boss_id*, or ``None``."""
        return self.bosses.get(boss_id)

    def get_boss_for_round(self, round_number: int) -> BossDefinition | None:
        """Return the boss sitting on *round_number*, or ``None``."""
        for boss in self.bosses.values():
            if boss.round == round_number:
                return boss
        return None

    def get_consumable(self, consumable_id: str) -> ConsumableDefinition | None:
        """Return the :class:`ConsumableDefinition` for *consumable_id*, or ``None``."""
        return self.consumables.get(consumable_id)

    def list_shop_perks(self) -> list[PerkDefinition]:
        """Return perks that can appear in the shop (no boss or forged perks)."""
        return [
            perk for perk in self.perks.values()
            if perk.source is None and not perk.is_forgeable
        ]

    def list_forgeable_perks(self) -> list[PerkDefinition]:
        """Return perks obtained by forging."""
        return [perk for perk in self.perks.values() if perk.is_forgeable]
