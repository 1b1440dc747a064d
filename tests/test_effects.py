"""Tests for the scenario effect interpreter.

Critical scenarios tested:
- Conditions: near, on location, no move, missing location
- ADD_ACTION puts a copied action at the front of the queue
- MODIFY_TURN accumulates into the round modifiers
- CONDITIONAL_VP and MODIFY_VP target the right players
- DISCARD_CARD stops at an empty hand
- SPAWN_STALKER places the Stalker where the round started
- Unknown condition or effect types fail loudly
"""

import pytest
from pydantic import BaseModel

from app.schemas.game_engine import (
    ActiveComplication,
    BoardSpace,
    CardName,
    ComplicationDuration,
    PlayerRole,
)
from app.schemas.scenario import (
    AddActionEffect,
    ConditionalVPEffect,
    DiscardCardEffect,
    EmitEventEffect,
    IsNearCondition,
    IsOnLocationCondition,
    ModifyTurnEffect,
    ModifyVPEffect,
    MoveTowardsEffect,
    NoMoveCondition,
    ScenarioDataError,
    SpawnStalkerEffect,
    VPCondition,
)
from app.services.game.engine.effects import apply_effect, check_condition, empty_spaces

from .conftest import (
    CATHEDRAL,
    PLAYER_1_ID,
    PLAYER_2_ID,
    PLAYER_3_ID,
    START,
    action,
    create_privates,
    create_round_state,
    create_state,
    make_context,
)


class UnknownRule(BaseModel):
    """Stands in for a condition or effect type the interpreter does not know."""

    type: str = "UNKNOWN"


class TestConditions:
    def test_is_near(self, scenario, two_players):
        ctx = make_context(scenario)
        near = create_round_state(
            create_state(two_players, harbinger=BoardSpace(x=2, y=2)), create_privates(two_players)
        )
        far = create_round_state(create_state(two_players), create_privates(two_players))
        condition = IsNearCondition(location="Cathedral", distance=1)

        assert check_condition(ctx, near, condition) is True
        assert check_condition(ctx, far, condition) is False

    def test_is_on_location(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(
            create_state(two_players, harbinger=CATHEDRAL), create_privates(two_players)
        )

        assert check_condition(ctx, rs, IsOnLocationCondition(location="Cathedral")) is True
        assert check_condition(ctx, rs, IsOnLocationCondition(location="Vault")) is False

    def test_no_move(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))
        moved = rs.model_copy(update={"previous_harbinger_position": BoardSpace(x=1, y=2)})

        assert check_condition(ctx, rs, NoMoveCondition()) is True
        assert check_condition(ctx, moved, NoMoveCondition()) is False

    def test_no_condition_holds(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))

        assert check_condition(ctx, rs, None) is True

    def test_unknown_location_raises(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))

        with pytest.raises(ScenarioDataError):
            check_condition(ctx, rs, IsNearCondition(location="Atlantis"))

    def test_unknown_condition_type_raises(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))

        with pytest.raises(ScenarioDataError):
            check_condition(ctx, rs, UnknownRule())


class TestQueueAndTurnEffects:
    def test_add_action_goes_first(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(
            create_state(two_players),
            create_privates(two_players),
            [action(PLAYER_2_ID, CardName.BUFFER)],
        )

        result = apply_effect(ctx, rs, PLAYER_1_ID, AddActionEffect(card_name=CardName.DENY))
        queue = result.round_state.action_queue

        assert [(a.player_id, a.card.name) for a in queue] == [
            (PLAYER_1_ID, CardName.DENY),
            (PLAYER_2_ID, CardName.BUFFER),
        ]
        assert queue[0].copied is True

    def test_modify_turn_accumulates(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))
        effect = ModifyTurnEffect(skip_next_move=True, next_move_value_modifier=2, move_value=-1)

        rs = apply_effect(ctx, rs, PLAYER_1_ID, effect).round_state
        rs = apply_effect(ctx, rs, PLAYER_1_ID, ModifyTurnEffect(next_move_value_modifier=1)).round_state

        assert rs.modifiers.skip_next_move is True
        assert rs.modifiers.next_move_value == 3
        assert rs.modifiers.move_value == -1

    def test_move_value_from_active_complications(self, scenario, two_players):
        ctx = make_context(scenario)
        complications = [
            ActiveComplication(
                id=f"comp-{i}", name="Fog", effect="", duration=ComplicationDuration.permanent()
            )
            for i in range(2)
        ]
        state = create_state(two_players).model_copy(
            update={"active_complications": complications}
        )
        rs = create_round_state(state, create_privates(two_players))

        result = apply_effect(
            ctx, rs, PLAYER_1_ID, ModifyTurnEffect(move_value="active_complications")
        )

        assert result.round_state.modifiers.move_value == 2

    def test_move_towards_stops_at_target(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(
            create_state(two_players, harbinger=BoardSpace(x=2, y=2)), create_privates(two_players)
        )

        result = apply_effect(
            ctx, rs, PLAYER_1_ID, MoveTowardsEffect(target_location="Cathedral", distance=3)
        )

        assert result.round_state.state.harbinger_position == CATHEDRAL

    def test_empty_spaces_exclude_occupied_cells(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))

        spaces = empty_spaces(ctx, rs)

        assert START not in spaces
        assert CATHEDRAL not in spaces
        assert len(spaces) == 49 - 5

    def test_empty_spaces_exclude_stalker(self, scenario, two_players):
        ctx = make_context(scenario)
        state = create_state(two_players).model_copy(
            update={"stalker_position": BoardSpace(x=2, y=2)}
        )
        rs = create_round_state(state, create_privates(two_players))

        spaces = empty_spaces(ctx, rs)

        assert BoardSpace(x=2, y=2) not in spaces
        assert len(spaces) == 49 - 6

    def test_spawn_stalker_at_round_start(self, scenario, two_players):
        ctx = make_context(scenario)
        state = create_state(two_players, harbinger=BoardSpace(x=5, y=4))
        rs = create_round_state(state, create_privates(two_players)).model_copy(
            update={"previous_harbinger_position": START}
        )

        result = apply_effect(ctx, rs, PLAYER_1_ID, SpawnStalkerEffect())

        assert result.round_state.state.stalker_position == START
        assert "An Intrepid Stalker appears at 4, 4!" in result.round_state.state.game_log

    def test_unknown_effect_type_raises(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))

        with pytest.raises(ScenarioDataError):
            apply_effect(ctx, rs, PLAYER_1_ID, UnknownRule())


class TestVPAndHandEffects:
    def test_conditional_vp(self, scenario, three_players):
        ctx = make_context(scenario)
        privates = create_privates(
            three_players,
            **{PLAYER_3_ID: {"role": PlayerRole.HERETIC}},
        )
        rs = create_round_state(create_state(three_players), privates)
        effect = ConditionalVPEffect(
            conditions=[
                VPCondition(
                    if_role=PlayerRole.TRUE_BELIEVER,
                    target_role=PlayerRole.HERETIC,
                    amount=-2,
                    target_self=3,
                ),
                VPCondition(if_role=PlayerRole.HERETIC, target_others=10),
            ]
        )

        result = apply_effect(ctx, rs, PLAYER_1_ID, effect)
        vp = {p.user_id: p.vp for p in result.round_state.private_states}

        assert vp == {PLAYER_1_ID: 3, PLAYER_2_ID: 0, PLAYER_3_ID: -2}

    def test_modify_vp_by_role(self, scenario, two_players):
        ctx = make_context(scenario)
        privates = create_privates(two_players, **{PLAYER_2_ID: {"role": PlayerRole.OPPORTUNIST}})
        rs = create_round_state(create_state(two_players), privates)

        result = apply_effect(
            ctx, rs, PLAYER_1_ID, ModifyVPEffect(role=PlayerRole.OPPORTUNIST, amount=7)
        )

        assert result.round_state.private_state(PLAYER_2_ID).vp == 7
        assert result.round_state.private_state(PLAYER_1_ID).vp == 0

    def test_discard_stops_at_empty_hand(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))

        result = apply_effect(ctx, rs, PLAYER_1_ID, DiscardCardEffect(amount=5))

        assert result.round_state.private_state(PLAYER_1_ID).hand == []
        assert len(result.round_state.private_state(PLAYER_2_ID).hand) == 3

    def test_emit_event_is_logged(self, scenario, two_players):
        ctx = make_context(scenario)
        rs = create_round_state(create_state(two_players), create_privates(two_players))

        result = apply_effect(ctx, rs, PLAYER_1_ID, EmitEventEffect(event_name="omen"))

        assert "(Event for Alice: omen)" in result.round_state.state.game_log
