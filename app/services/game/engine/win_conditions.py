"""Win-condition evaluation and final scoring."""

import logging

from app.schemas.game_engine import (
    GameResults,
    GameStatus,
    PlayerResult,
    PlayerRole,
    RoundState,
)

from .context import ResolutionContext, StepResult
from .events import GameEnded

logger = logging.getLogger(__name__)


def is_doomsday(ctx: ResolutionContext, round_state: RoundState) -> bool:
    """Check if the Harbinger stands on the doomsday location."""
    doomsday = ctx.scenario.location(ctx.scenario.doomsday_condition.lose_location)
    return round_state.state.harbinger_position == doomsday.position


def check_win_conditions(ctx: ResolutionContext, round_state: RoundState) -> StepResult:
    """Evaluate terminal conditions in priority order and finish the game on a hit.

    Order (first match wins):
    1. Doomsday: Harbinger on the doomsday location
    2. Main prophecy: Harbinger on the win location, and (unless disabled by
       rules) an action of the prophecy card resolved there this round
    3. Data Broker: a personal goal has every location visited
    4. Global failure: Harbinger on the fail location at or past the deadline

    A finished game is left untouched.
    """
    state = round_state.state
    if state.status == GameStatus.FINISHED:
        return StepResult(round_state)

    scenario = ctx.scenario
    position = state.harbinger_position

    if is_doomsday(ctx, round_state):
        doomsday = scenario.doomsday_condition
        return end_game(ctx, round_state, doomsday.winner.value, doomsday.trigger_message)

    prophecy = scenario.main_prophecy
    on_prophecy = position == scenario.location(prophecy.win_location).position
    if on_prophecy and (not ctx.rules.prophecy_requires_action or round_state.prophecy_action_seen):
        return end_game(ctx, round_state, prophecy.winner.value, prophecy.trigger_message)

    for player in round_state.private_states:
        if player.personal_goal is not None and player.personal_goal.completed:
            return end_game(
                ctx,
                round_state,
                PlayerRole.OPPORTUNIST.value,
                f"{player.username} completed their personal goal!",
            )

    fail = scenario.global_fail_condition
    if (
        state.current_round >= fail.max_round
        and position == scenario.location(fail.lose_location).position
    ):
        return end_game(ctx, round_state, fail.winner.value, fail.trigger_message)

    return StepResult(round_state)


def end_game(
    ctx: ResolutionContext,
    round_state: RoundState,
    winning_role: str,
    end_condition: str,
) -> StepResult:
    """Finish the game: award main-goal VP, build the leaderboard, sync public VP."""
    scenario = ctx.scenario
    team_vp = {
        PlayerRole.TRUE_BELIEVER.value: scenario.main_prophecy.vp,
        PlayerRole.HERETIC.value: scenario.doomsday_condition.vp,
    }
    lines = ["--- GAME OVER ---", end_condition]

    results: list[PlayerResult] = []
    updated_players = []
    for player in round_state.private_states:
        main_goal_vp = 0
        goal_completed = None
        if player.personal_goal is not None:
            goal_completed = player.personal_goal.completed
            if player.role == PlayerRole.OPPORTUNIST and goal_completed:
                main_goal_vp = ctx.rules.opportunist_goal_vp
                lines.append(f"{player.username} (Opportunist) completed their goal! +{main_goal_vp} VP")

        if player.role.value == winning_role and winning_role in team_vp:
            main_goal_vp = team_vp[winning_role]
            lines.append(
                f"{player.username} ({player.role.value}) was on the winning team! +{main_goal_vp} VP"
            )

        total_vp = main_goal_vp + player.vp
        updated_players.append(player.model_copy(update={"vp": total_vp}))
        results.append(
            PlayerResult(
                user_id=player.user_id,
                username=player.username,
                secret_identity=player.secret_identity,
                role=player.role,
                sub_role=player.sub_role,
                main_goal_vp=main_goal_vp,
                sub_role_vp=player.vp,
                total_vp=total_vp,
                personal_goal_completed=goal_completed,
            )
        )

    leaderboard = _rank(results)
    if leaderboard:
        lines.append(
            f"The individual winner is {leaderboard[0].username} with {leaderboard[0].total_vp} VP!"
        )

    final_vp = {r.user_id: r.total_vp for r in leaderboard}
    new_state = round_state.state.model_copy(
        update={
            "status": GameStatus.FINISHED,
            "players": [
                p.model_copy(update={"vp": final_vp.get(p.user_id, p.vp)})
                for p in round_state.state.players
            ],
            "results": GameResults(
                winning_role=winning_role,
                end_condition=end_condition,
                leaderboard=leaderboard,
            ),
        }
    )
    round_state = round_state.model_copy(
        update={"state": new_state, "private_states": updated_players}
    ).log(*lines)

    logger.info(
        "Game finished: game=%s, winning_role=%s, condition=%s",
        new_state.game_id[:8],
        winning_role,
        end_condition,
    )
    return StepResult(
        round_state,
        [
            GameEnded(
                winning_role=winning_role,
                end_condition=end_condition,
                final_rankings=[r.user_id for r in leaderboard],
            )
        ],
    )


def _rank(results: list[PlayerResult]) -> list[PlayerResult]:
    """Sort by total VP, descending; tied players share the higher rank."""
    ordered = sorted(results, key=lambda r: r.total_vp, reverse=True)
    ranked: list[PlayerResult] = []
    for index, result in enumerate(ordered):
        if ranked and ranked[-1].total_vp == result.total_vp:
            rank = ranked[-1].rank
        else:
            rank = index + 1
        ranked.append(result.model_copy(update={"rank": rank}))
    return ranked
