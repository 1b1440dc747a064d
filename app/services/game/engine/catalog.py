"""Fixed game catalog: command cards, deck template, identities and roles."""

import random
from uuid import uuid4

from app.schemas.game_engine import (
    CardName,
    CommandCard,
    PlayerRole,
    PlayerSubRole,
    SecretIdentity,
)

SECRET_IDENTITIES: list[SecretIdentity] = list(SecretIdentity)

PLAYER_ROLES: list[PlayerRole] = list(PlayerRole)

SUB_ROLES: dict[PlayerRole, list[PlayerSubRole]] = {
    PlayerRole.TRUE_BELIEVER: [PlayerSubRole.GUIDE, PlayerSubRole.FIXER],
    PlayerRole.HERETIC: [PlayerSubRole.INSTIGATOR, PlayerSubRole.WASTER],
    PlayerRole.OPPORTUNIST: [PlayerSubRole.DATA_BROKER, PlayerSubRole.MIMIC],
}

CARD_EFFECTS: dict[CardName, str] = {
    CardName.MOVE_1: "Move 1 space.",
    CardName.MOVE_2: "Move 2 spaces.",
    CardName.MOVE_3: "Move 3 spaces.",
    CardName.HOMAGE: "Repeat the previously resolved action.",
    CardName.HESITATE: "Next Move card is -1 value.",
    CardName.FORESIGHT: "Preemptively copy the next action.",
    CardName.CHARGE: "Next Move card is +1 value.",
    CardName.DENY: "Prevent the next action from having any effect.",
    CardName.RETHINK: "Cancel the previously resolved action.",
    CardName.EMPOWER: "If next is Move, increase value by +2.",
    CardName.IMPULSE: "Move to a random adjacent space.",
    CardName.DEGRADE: "If next is Move, decrease value by -1.",
    CardName.INTERACT: "Interact with Object/NPC on current space.",
    CardName.INHIBIT: "The next Interact action will have no effect.",
    CardName.BUFFER: "Do Nothing.",
    CardName.GAMBLE: "All remaining actions are now randomly assigned from each players' hand.",
    CardName.HAIL_MARY: "All players' hands are now redrawn.",
    CardName.RELOAD: "Redraw your hand and play an action at random.",
}

DECK_TEMPLATE: list[CardName] = [
    *[CardName.MOVE_1] * 4,
    *[CardName.MOVE_2] * 3,
    *[CardName.MOVE_3] * 2,
    CardName.HESITATE, CardName.HESITATE,
    CardName.CHARGE, CardName.CHARGE,
    CardName.EMPOWER,
    CardName.DEGRADE,
    CardName.DENY, CardName.DENY,
    CardName.RETHINK, CardName.RETHINK,
    CardName.HOMAGE,
    CardName.FORESIGHT,
    *[CardName.INTERACT] * 3,
    CardName.INHIBIT,
    CardName.BUFFER, CardName.BUFFER,
    CardName.IMPULSE,
    CardName.GAMBLE,
    CardName.HAIL_MARY,
    CardName.RELOAD,
]  # fmt: skip


def create_card(name: CardName) -> CommandCard:
    """Create a unique card instance."""
    return CommandCard(id=str(uuid4()), name=name, effect=CARD_EFFECTS[name])


def create_new_deck() -> list[CommandCard]:
    """Build an unshuffled deck from the full template."""
    return [create_card(name) for name in DECK_TEMPLATE]


def shuffled_deck(rng: random.Random) -> list[CommandCard]:
    deck = create_new_deck()
    rng.shuffle(deck)
    return deck


def deal_hands(
    player_ids: list[str],
    rng: random.Random,
    hand_size: int,
) -> dict[str, list[CommandCard]]:
    """Shuffle a fresh deck and deal hands sequentially without replacement.

    Leftover cards are discarded: refills always reshuffle the full template.
    """
    if hand_size * len(player_ids) > len(DECK_TEMPLATE):
        raise ValueError(
            f"Cannot deal {hand_size} cards to {len(player_ids)} players "
            f"from a deck of {len(DECK_TEMPLATE)}"
        )
    deck = shuffled_deck(rng)
    return {
        player_id: deck[i * hand_size : (i + 1) * hand_size]
        for i, player_id in enumerate(player_ids)
    }
