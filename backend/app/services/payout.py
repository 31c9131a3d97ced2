"""Pure pool distribution for a resolved prediction."""

from __future__ import annotations

from typing import Sequence

from app.domain import Lost, PayoutPlan, Refunded, VotePayout, VoteSettlement, VoteStake, Won


def plan_payouts(stakes: Sequence[VoteStake], winning_option: str) -> PayoutPlan:
    """Split the pool across winners in proportion to their stakes.

    Each winner receives ``floor(total_pool * stake / winner_pool)``; the
    rounding leftover stays on the plan as ``remainder``. When nobody picked
    the winning option every vote is refunded its own stake.
    """

    total_pool = sum(stake.credits_staked for stake in stakes)
    winner_pool = sum(
        stake.credits_staked for stake in stakes if stake.selected_option == winning_option
    )

    payouts: list[VotePayout] = []
    for stake in stakes:
        settlement: VoteSettlement
        if winner_pool == 0:
            settlement = Refunded(stake.credits_staked)
        elif stake.selected_option == winning_option:
            settlement = Won((total_pool * stake.credits_staked) // winner_pool)
        else:
            settlement = Lost()
        payouts.append(VotePayout(vote_id=stake.vote_id, user_id=stake.user_id, settlement=settlement))

    return PayoutPlan(
        winning_option=winning_option,
        total_pool=total_pool,
        winner_pool=winner_pool,
        payouts=payouts,
    )


__all__ = ["plan_payouts"]
