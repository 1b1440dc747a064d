"""Bundled scenario data.

Scenarios normally live in the Supabase ``scenarios`` table as JSON. The
default scenario ships with the service so a game can start without any
database rows, and doubles as the reference for the JSON shape.
"""

from functools import lru_cache

from app.schemas.scenario import Scenario

DEFAULT_SCENARIO_ID = "default"

DEFAULT_SCENARIO_DATA: dict = {
    "id": DEFAULT_SCENARIO_ID,
    "name": "The Fall of Ashgrove",
    "board_size_x": 9,
    "board_size_y": 9,
    "locations": [
        {"name": "The Park in the Centre", "position": {"x": 5, "y": 5}},
        {"name": "The Old Cathedral", "position": {"x": 2, "y": 2}},
        {"name": "The Sunken Vault", "position": {"x": 8, "y": 8}},
        {"name": "The Clocktower", "position": {"x": 8, "y": 2}},
        {"name": "The Market Square", "position": {"x": 2, "y": 8}},
        {"name": "The Observatory", "position": {"x": 5, "y": 1}},
        {"name": "The Docks", "position": {"x": 5, "y": 9}},
    ],
    "object_effects": {
        "Rusted Key": {
            "description": "Opens something, somewhere.",
            "effects": [
                {"type": "DRAW_CARD", "amount": 1, "description": "Draw a card."},
                {
                    "type": "ADD_ACTION",
                    "card_name": "Interact",
                    "description": "The key turns: an Interact is added.",
                },
            ],
        },
        "Lantern": {
            "effects": [
                {
                    "type": "MODIFY_TURN",
                    "next_move_value_modifier": 1,
                    "description": "The light pulls it forward: next Move +1.",
                }
            ]
        },
        "Torn Map": {
            "effects": [
                {
                    "type": "MOVE_TOWARDS",
                    "target_location": "The Old Cathedral",
                    "distance": 1,
                    "description": "The map points toward the Cathedral.",
                }
            ]
        },
        "Cracked Mirror": {
            "effects": [{"type": "WARP", "description": "The reflection swallows the Harbinger."}]
        },
        "Music Box": {
            "effects": [
                {
                    "type": "MODIFY_TURN",
                    "skip_next_move": True,
                    "description": "The melody lulls it: the next Move is skipped.",
                }
            ]
        },
        "Church Bell": {
            "effects": [
                {
                    "type": "REMOVE_COMPLICATION",
                    "description": "The bell rings out and a Complication fades.",
                }
            ]
        },
        "Old Coin": {
            "effects": [
                {
                    "type": "CONDITIONAL_VP",
                    "conditions": [
                        {"if_role": "Opportunist", "target_self": 3},
                        {"if_role": "Heretic", "target_role": "Heretic", "amount": 1},
                    ],
                    "description": "Someone pockets the coin.",
                }
            ]
        },
        "Sealed Letter": {
            "effects": [
                {
                    "type": "EMIT_EVENT",
                    "event_name": "letter_opened",
                    "description": "A letter addressed to no one.",
                },
                {"type": "DISCARD_CARD", "amount": 1, "description": "Discard a random card."},
            ]
        },
        "Hourglass": {
            "effects": [
                {
                    "type": "MODIFY_TURN",
                    "next_action_protected": True,
                    "description": "Time holds still: the next Deny or Rethink fails.",
                }
            ]
        },
    },
    "npc_effects": {
        "The Archivist": {
            "static_location": "The Observatory",
            "effects": {
                "positive": {
                    "type": "MOVE_TOWARDS",
                    "target_location": "The Old Cathedral",
                    "distance": 2,
                    "description": "The Archivist recalls the old road.",
                },
                "negative": {
                    "type": "MOVE_TOWARDS",
                    "target_location": "The Sunken Vault",
                    "distance": 1,
                    "description": "The Archivist misreads the stars.",
                },
            },
        },
        "The Beggar": {
            "effects": {
                "positive": {"type": "DRAW_CARD", "amount": 1, "description": "A gift in return."},
                "negative": {
                    "type": "DISCARD_CARD",
                    "amount": 1,
                    "description": "Your pocket is picked.",
                },
            },
        },
        "The Preacher": {
            "effects": {
                "positive": {
                    "type": "MODIFY_VP",
                    "role": "True Believer",
                    "amount": 2,
                    "description": "The faithful are rewarded.",
                },
                "negative": {
                    "type": "MODIFY_VP",
                    "role": "Heretic",
                    "amount": 2,
                    "description": "The sermon turns sour.",
                },
            },
        },
        "The Merchant": {
            "effects": {
                "positive": {
                    "type": "ADD_ACTION",
                    "card_name": "Charge",
                    "description": "A bargain: Charge is added.",
                },
                "negative": {
                    "type": "ADD_ACTION",
                    "card_name": "Hesitate",
                    "description": "A swindle: Hesitate is added.",
                },
            },
        },
        "The Watchman": {
            "effects": {
                "positive": {
                    "type": "REMOVE_COMPLICATION",
                    "description": "The Watchman restores order.",
                },
                "negative": {"type": "WARP", "description": "The Watchman drives it away."},
            },
        },
    },
    "complication_effects": {
        "Fog Rolls In": {
            "description": "Moves are one weaker while the fog lasts.",
            "duration": 2,
            "trigger": {"type": "ACTION_PLAYED", "cards": ["Move 1", "Move 2", "Move 3"]},
            "effect": {"type": "MODIFY_TURN", "move_value": -1, "description": "Fog."},
        },
        "Riot in the Streets": {
            "description": "The Harbinger is swept to a random empty space.",
            "duration": 0,
            "effect": {"type": "WARP", "description": "The crowd surges."},
        },
        "Tremors": {
            "description": "Every Impulse drags the Harbinger toward the Vault.",
            "duration": 3,
            "trigger": {"type": "ACTION_PLAYED", "cards": ["Impulse"]},
            "effect": {
                "type": "MOVE_TOWARDS",
                "target_location": "The Sunken Vault",
                "distance": 1,
                "description": "The ground shifts.",
            },
        },
        "Crowded Roads": {
            "description": "Every Move is slowed by the number of active Complications.",
            "duration": -1,
            "trigger": {"type": "ACTION_PLAYED", "cards": ["Move 2", "Move 3"]},
            "effect": {
                "type": "MODIFY_TURN",
                "move_value": "active_complications",
                "description": "Traffic.",
            },
        },
        "Tithe": {
            "description": "Heretics lose 1 VP when the tithe is called.",
            "duration": 1,
            "trigger": {"type": "ON_ADD"},
            "effect": {"type": "MODIFY_VP", "role": "Heretic", "amount": -1, "description": "Tithe."},
        },
        "The Intrepid Stalker": {
            "description": "A stranger shadows the Harbinger; Moves fail while they share a space.",
            "duration": 0,
            "effect": {"type": "SPAWN_STALKER", "description": "Footsteps behind you."},
        },
    },
    "sub_role_definitions": {
        "The Guide": {
            "description": "Scores when the Harbinger ends a round near the Cathedral.",
            "vp": 3,
            "trigger": {
                "type": "END_OF_ROUND",
                "condition": {"type": "IS_NEAR", "location": "The Old Cathedral", "distance": 2},
            },
        },
        "The Fixer": {
            "description": "Scores whenever a Complication is removed.",
            "vp": 4,
            "trigger": {"type": "ON_REMOVE_COMPLICATION"},
        },
        "The Instigator": {
            "description": "Scores for playing Deny, Rethink or Gamble.",
            "vp": 5,
            "trigger": {"type": "ON_CARD", "cards": ["Deny", "Rethink", "Gamble"]},
        },
        "The Waster": {
            "description": "Scores when the Harbinger ends a round where it started.",
            "vp": 2,
            "trigger": {"type": "END_OF_ROUND", "condition": {"type": "NO_MOVE"}},
        },
        "The Data Broker": {
            "description": "Scores by guiding the Harbinger through a set of locations.",
            "vp": 0,
        },
        "The Mimic": {
            "description": "Scores when copying a True Believer's action.",
            "vp": 4,
            "trigger": {"type": "ON_COPY"},
        },
    },
    "opportunist_goals": [
        ["The Market Square", "The Docks", "The Observatory"],
        ["The Clocktower", "The Observatory", "The Market Square"],
        ["The Docks", "The Clocktower"],
    ],
    "random_npc_count": 3,
    "main_prophecy": {
        "start_location": "The Park in the Centre",
        "win_location": "The Old Cathedral",
        "win_action": "Interact",
        "trigger_message": "The Harbinger is consecrated at the Old Cathedral. The prophecy is fulfilled!",
        "vp": 20,
    },
    "doomsday_condition": {
        "lose_location": "The Sunken Vault",
        "trigger_message": "The Harbinger descends into the Sunken Vault. Doomsday has come.",
        "vp": 20,
    },
    "global_fail_condition": {
        "lose_location": "The Clocktower",
        "max_round": 10,
        "trigger_message": "The Clocktower strikes thirteen. Time has run out.",
    },
}


@lru_cache
def load_default_scenario() -> Scenario:
    """Validate the bundled scenario once and reuse it."""
    return Scenario.model_validate(DEFAULT_SCENARIO_DATA)
