"""Player ability catalog and derived combat stats: pure functions, no I/O.

Everything here is computed from the character sheet plus the items the
player (not a companion) has equipped.
"""
from __future__ import annotations

import math

from narrated_rpg.config import CombatSettings, get_settings
from narrated_rpg.mechanics.perks import PERK_GATED_ABILITIES, has_perk
from narrated_rpg.models.ability import (
    Ability,
    AbilityType,
    AoeDamageEffect,
    AoeHealEffect,
    BuffEffect,
    DotEffect,
    DrainEffect,
    Prerequisites,
    Resource,
    SlowEffect,
    StunEffect,
    SummonEffect,
)
from narrated_rpg.models.character import CharacterSheet, PlayerCombatStats
from narrated_rpg.models.item import EquipSlot, InventoryItem, ItemType
from narrated_rpg.models.skills import PerkId, SkillName

BASE_UNARMED_DAMAGE = 10
BASIC_ATTACK_COST = 10
REGEN_PER_SECOND = 0.25

RANGED_KEYWORDS = ("bow", "crossbow")
TWO_HANDED_KEYWORDS = ("greatsword", "battleaxe", "battle axe", "warhammer", "two-handed", "claymore")
SMALL_WEAPON_KEYWORDS = ("dagger", "knife", "shortsword", "short sword", "war axe", "mace", "sword")


def _text(item: InventoryItem) -> str:
    return f"{item.name} {item.subtype or ''}".lower()


def is_shield(item: InventoryItem) -> bool:
    return "shield" in _text(item)


def is_ranged_weapon(item: InventoryItem | None) -> bool:
    return item is not None and any(k in _text(item) for k in RANGED_KEYWORDS)


def is_small_weapon(item: InventoryItem) -> bool:
    text = _text(item)
    if any(k in text for k in TWO_HANDED_KEYWORDS) or is_ranged_weapon(item):
        return False
    return any(k in text for k in SMALL_WEAPON_KEYWORDS)


def weapon_skill(item: InventoryItem | None) -> SkillName:
    if item is None:
        return SkillName.UNARMED
    if is_ranged_weapon(item):
        return SkillName.ARCHERY
    if any(k in _text(item) for k in TWO_HANDED_KEYWORDS):
        return SkillName.TWO_HANDED
    return SkillName.ONE_HANDED


def player_equipment(inventory: list[InventoryItem]) -> list[InventoryItem]:
    """Items equipped by the player; companion gear is excluded."""
    return [i for i in inventory if i.equipped_by_player]


def split_hands(equipped: list[InventoryItem]) -> tuple[InventoryItem | None, InventoryItem | None]:
    """Return (main_hand, off_hand). Shields always sit in the off hand."""
    main_hand = None
    off_hand = None
    for item in equipped:
        if is_shield(item):
            off_hand = off_hand or item
            continue
        if item.type != ItemType.WEAPON:
            continue
        if item.slot == EquipSlot.OFFHAND:
            off_hand = off_hand or item
        elif main_hand is None:
            main_hand = item
        elif off_hand is None:
            off_hand = item
    return main_hand, off_hand


def calculate_player_combat_stats(
    character: CharacterSheet,
    inventory: list[InventoryItem],
    current: PlayerCombatStats | None = None,
    settings: CombatSettings | None = None,
) -> PlayerCombatStats:
    """Derive armor, weapon damage, chances, regen and abilities.

    ``current`` carries live vitals forward; without it the player starts full.
    """
    equipped = player_equipment(inventory)
    main_hand, _ = split_hands(equipped)

    armor_skill = max(character.skill(SkillName.LIGHT_ARMOR), character.skill(SkillName.HEAVY_ARMOR))
    raw_armor = sum(max(0, i.armor or 0) for i in equipped)
    armor = math.floor(raw_armor * (1 + armor_skill * 0.5 / 100))

    best_weapon_skill = max(
        character.skill(SkillName.ONE_HANDED),
        character.skill(SkillName.TWO_HANDED),
        character.skill(SkillName.ARCHERY),
    )
    raw_damage = (main_hand.damage if main_hand and main_hand.damage else BASE_UNARMED_DAMAGE)
    weapon_damage = math.floor(raw_damage * (1 + best_weapon_skill * 0.5 / 100))

    stats = PlayerCombatStats(
        max_health=character.max_health,
        current_health=character.max_health,
        max_magicka=character.max_magicka,
        current_magicka=character.max_magicka,
        max_stamina=character.max_stamina,
        current_stamina=character.max_stamina,
        armor=armor,
        weapon_damage=weapon_damage,
        crit_chance=5 + best_weapon_skill // 10,
        dodge_chance=math.floor(character.skill(SkillName.SNEAK) * 0.3),
        magic_resist=math.floor(character.skill(SkillName.ALTERATION) * 0.2),
        health_regen=REGEN_PER_SECOND,
        magicka_regen=REGEN_PER_SECOND,
        stamina_regen=REGEN_PER_SECOND,
    )
    if current is not None:
        stats.current_health = min(current.current_health, stats.max_health)
        stats.current_magicka = min(current.current_magicka, stats.max_magicka)
        stats.current_stamina = min(current.current_stamina, stats.max_stamina)
    stats.abilities = generate_player_abilities(character, inventory, weapon_damage, settings)
    return stats


def _prereq(skill: SkillName | None = None, level: int = 0, perk: PerkId | None = None) -> Prerequisites:
    return Prerequisites(
        skills={skill: level} if skill else {},
        perks=[perk] if perk else [],
    )


def generate_player_abilities(
    character: CharacterSheet,
    inventory: list[InventoryItem],
    weapon_damage: int | None = None,
    settings: CombatSettings | None = None,
) -> list[Ability]:
    """Build the ordered list of abilities the player can use right now."""
    settings = settings or get_settings()
    equipped = player_equipment(inventory)
    main_hand, off_hand = split_hands(equipped)
    if weapon_damage is None:
        weapon_damage = main_hand.damage if main_hand and main_hand.damage else BASE_UNARMED_DAMAGE
    wd = max(1, weapon_damage)
    skill = character.skill
    abilities: list[Ability] = []

    ranged = is_ranged_weapon(main_hand)
    abilities.append(Ability(
        id="basic_attack",
        name=f"Attack with {main_hand.name}" if main_hand else "Punch",
        type=AbilityType.RANGED if ranged else AbilityType.MELEE,
        cost=BASIC_ATTACK_COST,
        damage=wd,
        description="A standard strike with your equipped weapon.",
    ))

    if main_hand is not None:
        main_skill = weapon_skill(main_hand)
        if skill(main_skill) >= 20:
            abilities.append(Ability(
                id="power_attack", name="Power Attack", cost=25, cooldown=1,
                damage=math.floor(wd * 1.5),
                description="A heavy, committed blow.",
                prerequisites=_prereq(main_skill, 20),
            ))
        if ranged:
            abilities.append(Ability(
                id="aimed_shot", name="Aimed Shot", type=AbilityType.RANGED, cost=20,
                damage=math.floor(wd * 1.4),
                description="Take careful aim for a precise shot.",
                prerequisites=_prereq(SkillName.ARCHERY),
            ))
        gated = {
            "riposte": Ability(
                id="riposte", name="Riposte", cost=15, damage=math.floor(wd * 1.2),
                effects=[BuffEffect(name="Riposte Stance", stat="armor", value=15, duration=1)],
                description="Parry and counter in one motion.",
            ),
            "slash": Ability(
                id="slash", name="Slash", cost=18, damage=math.floor(wd * 1.3),
                effects=[DotEffect(name="Bleeding", value=max(1, wd // 5), duration=2, chance=60)],
                description="A long cut that leaves the target bleeding.",
            ),
            "mortal_strike": Ability(
                id="mortal_strike", name="Mortal Strike", cost=35, cooldown=2,
                damage=wd * 2,
                description="A finishing blow aimed at a vital spot.",
            ),
            "whirlwind_attack": Ability(
                id="whirlwind_attack", name="Whirlwind Attack", type=AbilityType.AEO,
                resource=Resource.STAMINA, cost=35, cooldown=2,
                effects=[AoeDamageEffect(value=math.floor(wd * 0.8))],
                description="Spin and strike every foe in reach.",
            ),
            "cleaving_strike": Ability(
                id="cleaving_strike", name="Cleaving Strike", type=AbilityType.AEO,
                resource=Resource.STAMINA, cost=30, cooldown=1,
                effects=[AoeDamageEffect(value=wd)],
                description="A sweeping cleave through the enemy line.",
            ),
        }
        for ability_id, ability in gated.items():
            perk = PERK_GATED_ABILITIES[ability_id]
            if has_perk(character, perk):
                ability.prerequisites = _prereq(perk=perk)
                abilities.append(ability)

    if off_hand is not None and is_shield(off_hand):
        abilities.append(Ability(
            id="shield_bash", name="Shield Bash", cost=15,
            damage=8 + skill(SkillName.BLOCK) // 5,
            effects=[StunEffect(name="Dazed", duration=1, chance=25)],
            description="Slam your shield into the target.",
            prerequisites=_prereq(SkillName.BLOCK),
        ))
        if skill(SkillName.BLOCK) >= settings.shield_block_skill_threshold:
            abilities.append(Ability(
                id="shield_block", name="Shield Block", type=AbilityType.UTILITY, cost=10,
                effects=[BuffEffect(name="Shield Block", stat="armor", value=30, duration=1)],
                description="Raise your shield to absorb the next blows.",
                prerequisites=_prereq(SkillName.BLOCK, settings.shield_block_skill_threshold),
            ))
    elif off_hand is not None and is_small_weapon(off_hand):
        abilities.append(Ability(
            id="offhand_attack", name=f"Off-hand {off_hand.name}", cost=8,
            damage=max(1, off_hand.damage or wd // 2),
            description="A quick strike with your off-hand weapon.",
        ))

    abilities.extend(_spell_abilities(character))

    if (skill(SkillName.UNARMED, 0) >= settings.unarmed_skill_threshold
            or has_perk(character, PerkId.UNARMED_MASTERY)):
        abilities.append(Ability(
            id="unarmed_strike", name="Unarmed Strike", cost=0, unarmed=True,
            damage=8 + skill(SkillName.UNARMED, 0) // 5,
            description="Fists and feet; tireless and always ready.",
            prerequisites=_prereq(SkillName.UNARMED, settings.unarmed_skill_threshold),
        ))
    return abilities


def _spell_abilities(character: CharacterSheet) -> list[Ability]:
    skill = character.skill
    destruction = skill(SkillName.DESTRUCTION)
    restoration = skill(SkillName.RESTORATION)
    conjuration = skill(SkillName.CONJURATION)
    spells: list[Ability] = []

    if destruction >= 20:
        spells.append(Ability(
            id="flames", name="Flames", type=AbilityType.MAGIC, cost=15, element="fire",
            damage=15 + destruction // 5,
            effects=[DotEffect(name="Burning", value=3, duration=2, chance=40)],
            prerequisites=_prereq(SkillName.DESTRUCTION, 20),
        ))
    if destruction >= 35:
        spells.append(Ability(
            id="ice_spike", name="Ice Spike", type=AbilityType.MAGIC, cost=25, element="frost",
            damage=25 + destruction // 5,
            effects=[SlowEffect(name="Frostbitten", value=20, duration=2)],
            prerequisites=_prereq(SkillName.DESTRUCTION, 35),
        ))
    if destruction >= 50:
        spells.append(Ability(
            id="lightning_bolt", name="Lightning Bolt", type=AbilityType.MAGIC, cost=35,
            element="shock", cooldown=1, damage=35 + destruction // 5,
            effects=[DrainEffect(name="Sapped", stat="magicka", value=10)],
            prerequisites=_prereq(SkillName.DESTRUCTION, 50),
        ))
    if destruction >= 70:
        spells.append(Ability(
            id="fire_storm", name="Fire Storm", type=AbilityType.AEO, cost=60, cooldown=3,
            element="fire",
            effects=[AoeDamageEffect(value=30 + destruction // 4)],
            prerequisites=_prereq(SkillName.DESTRUCTION, 70),
        ))
    if restoration >= 20:
        spells.append(Ability(
            id="healing", name="Healing", type=AbilityType.MAGIC, cost=20,
            heal=25 + math.floor(restoration * 0.5),
            prerequisites=_prereq(SkillName.RESTORATION, 20),
        ))
    if restoration >= 60:
        spells.append(Ability(
            id="healing_circle", name="Healing Circle", type=AbilityType.AEO, cost=45, cooldown=2,
            effects=[AoeHealEffect(value=20 + restoration // 4)],
            prerequisites=_prereq(SkillName.RESTORATION, 60),
        ))
    if conjuration >= 20:
        spells.append(Ability(
            id="conjure_familiar", name="Conjure Familiar", type=AbilityType.MAGIC, cost=35,
            effects=[SummonEffect(name="Spectral Wolf")],
            prerequisites=_prereq(SkillName.CONJURATION, 20),
        ))
    if conjuration >= 30:
        spells.append(Ability(
            id="bound_weapon", name="Bound Weapon", type=AbilityType.MAGIC, cost=30, cooldown=3,
            effects=[BuffEffect(name="Bound Weapon", stat="damage", value=10, duration=3)],
            prerequisites=_prereq(SkillName.CONJURATION, 30),
        ))
    if conjuration >= 50:
        spells.append(Ability(
            id="conjure_atronach", name="Conjure Flame Atronach", type=AbilityType.MAGIC, cost=60,
            effects=[SummonEffect(name="Flame Atronach", player_turns=4)],
            prerequisites=_prereq(SkillName.CONJURATION, 50),
        ))
    return spells
