"""
Kuhn poker, a hidden-information example game.

Three-card deck (J < Q < K), two players, one card each. Both players ante 1.
Player 0 acts first (check or bet 1); the betting round ends after a
check-check, a call or a fold. Rewards are each player's net chip balance.

Player 0 cannot see player 1's card, so its information set after the deal
contains two concrete states. Determinization redeals the opponent card
uniformly from the two cards the observer does not hold.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Tuple

import numpy as np


CARDS = ('J', 'Q', 'K')
CARD_RANK = {card: rank for rank, card in enumerate(CARDS)}
HIDDEN = '?'

CHECK = 'check'
BET = 'bet'
FOLD = 'fold'
CALL = 'call'

ANTE = 1
BET_SIZE = 1

# Betting histories that end the hand
TERMINAL_HISTORIES = {
    (CHECK, CHECK),
    (BET, CALL),
    (BET, FOLD),
    (CHECK, BET, CALL),
    (CHECK, BET, FOLD),
}


class KuhnException(Exception):
    """Raised for moves the rules do not allow."""

    pass


@dataclass(frozen=True)
class KuhnState:
    """
    Attributes:
        cards: (player 0 card, player 1 card); a card may be HIDDEN in an
               observer's view
        history: Betting actions so far
    """

    cards: Tuple[str, str]
    history: Tuple[str, ...] = ()

    def view(self, observer: int) -> "KuhnState":
        """Return the state as ``observer`` sees it (opponent card hidden)."""
        cards = list(self.cards)
        cards[1 - observer] = HIDDEN
        return replace(self, cards=tuple(cards))


class KuhnPoker:
    """Game model for two-player Kuhn poker."""

    def initial_state(self, first_card: str, second_card: str) -> KuhnState:
        for card in (first_card, second_card):
            if card not in CARDS and card != HIDDEN:
                raise ValueError(f"Invalid card: {card}. Must be one of {CARDS}")
        if first_card == second_card and first_card != HIDDEN:
            raise ValueError("Both players cannot hold the same card")
        return KuhnState(cards=(first_card, second_card))

    def deal(self, rng: np.random.Generator) -> KuhnState:
        """Deal two distinct random cards."""
        first, second = rng.choice(len(CARDS), size=2, replace=False)
        return KuhnState(cards=(CARDS[first], CARDS[second]))

    def legal_actions(self, state: KuhnState) -> List[str]:
        history = state.history
        if history in TERMINAL_HISTORIES:
            return []
        if history in ((), (CHECK,)):
            return [CHECK, BET]
        if history in ((BET,), (CHECK, BET)):
            return [FOLD, CALL]
        raise KuhnException(f"Unreachable betting history: {history}")

    def apply(self, state: KuhnState, action: str) -> KuhnState:
        if action not in self.legal_actions(state):
            raise KuhnException(f"Action {action} is not legal after {state.history}")
        return replace(state, history=state.history + (action,))

    def is_terminal(self, state: KuhnState) -> bool:
        return state.history in TERMINAL_HISTORIES

    def contributions(self, state: KuhnState) -> List[int]:
        """Chips each player has put in the pot."""
        contributed = [ANTE, ANTE]
        for turn, action in enumerate(state.history):
            if action in (BET, CALL):
                contributed[turn % 2] += BET_SIZE
        return contributed

    def reward(self, state: KuhnState) -> Dict[int, float]:
        if not self.is_terminal(state):
            raise KuhnException("Reward is only defined for finished hands")

        contributed = self.contributions(state)
        pot = sum(contributed)

        if state.history[-1] == FOLD:
            # The player who did not fold takes the pot
            folder = (len(state.history) - 1) % 2
            winner = 1 - folder
        else:
            winner = 0 if CARD_RANK[state.cards[0]] > CARD_RANK[state.cards[1]] else 1

        balances = [-c for c in contributed]
        balances[winner] += pot
        return {0: float(balances[0]), 1: float(balances[1])}

    def information_set_key(self, state: KuhnState, player: int) -> Tuple:
        return (player, state.cards[player], state.history)

    def sample_determinization(
        self, state: KuhnState, observer: int, rng: np.random.Generator
    ) -> KuhnState:
        own_card = state.cards[observer]
        remaining = [card for card in CARDS if card != own_card]
        opponent_card = remaining[int(rng.integers(len(remaining)))]
        cards = [HIDDEN, HIDDEN]
        cards[observer] = own_card
        cards[1 - observer] = opponent_card
        return replace(state, cards=tuple(cards))

    def acting_player(self, state: KuhnState) -> int:
        return len(state.history) % 2


def second_player_equilibrium_action(state: KuhnState, rng: np.random.Generator) -> str:
    """
    Equilibrium strategy for player 1.

    After a check: bet with K, check with Q, bet 1/3 of the time with J.
    Facing a bet: call with K, call 1/3 of the time with Q, fold with J.

    Raises:
        KuhnException: If it is not player 1's turn to act
    """
    if len(state.history) != 1:
        raise KuhnException(f"Player 1 does not act after {state.history}")

    facing_check = state.history[0] == CHECK
    one_third = rng.random() < 1.0 / 3.0
    card = state.cards[1]

    if card == 'K':
        return BET if facing_check else CALL
    if card == 'Q':
        if facing_check:
            return CHECK
        return CALL if one_third else FOLD
    if facing_check:
        return BET if one_third else CHECK
    return FOLD
