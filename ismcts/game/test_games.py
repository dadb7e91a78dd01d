"""
Tests for the example game models.

Test Coverage:
    - Nim: moves, terminal detection, standard and misère rewards, nim-sum
    - Kuhn poker: betting structure, payoffs, views, determinization,
      equilibrium player
    - Toy games: legality and rewards
    - Every example satisfies the GameModel protocol
"""

import numpy as np
import pytest

from ismcts.game.interface import GameModel
from ismcts.game.kuhn_poker import (
    BET,
    CALL,
    CHECK,
    FOLD,
    HIDDEN,
    KuhnException,
    KuhnPoker,
    KuhnState,
    second_player_equilibrium_action,
)
from ismcts.game.nim import MISERE, Nim, NimMove, NimState
from ismcts.game.toy import (
    HiddenAvailabilityGame,
    HiddenState,
    NoisyBanditGame,
    SingleDecisionGame,
    TenMoveGame,
)


class TestNim:
    """Tests for Nim."""

    def test_legal_actions(self):
        """Test every (heap, amount) pair is listed in heap order."""
        game = Nim()
        state = game.initial_state(heaps=(1, 2))

        assert game.legal_actions(state) == [NimMove(0, 1), NimMove(1, 1), NimMove(1, 2)]

    def test_apply_switches_player(self):
        """Test a move removes objects and passes the turn."""
        game = Nim()
        state = game.apply(game.initial_state(heaps=(3, 4)), NimMove(1, 3))

        assert state == NimState(heaps=(3, 1), player_to_move=1)

    @pytest.mark.parametrize("move", [NimMove(2, 1), NimMove(0, 0), NimMove(0, 4)])
    def test_apply_rejects_invalid_moves(self, move):
        """Test out of range heaps and amounts are rejected."""
        game = Nim()

        with pytest.raises(ValueError):
            game.apply(game.initial_state(heaps=(3, 4)), move)

    def test_standard_reward(self):
        """Test taking the last object wins standard Nim."""
        game = Nim()
        state = game.apply(game.initial_state(heaps=(2,)), NimMove(0, 2))

        assert game.is_terminal(state)
        assert game.reward(state) == {0: 1.0, 1: -1.0}

    def test_misere_reward(self):
        """Test taking the last object loses misère Nim."""
        game = Nim(MISERE)
        state = game.apply(game.initial_state(heaps=(2,)), NimMove(0, 2))

        assert game.reward(state) == {0: -1.0, 1: 1.0}

    def test_invalid_mode(self):
        """Test an unknown mode is rejected."""
        with pytest.raises(ValueError, match="mode"):
            Nim('normal')

    def test_nim_sum(self):
        """Test the nim-sum is the XOR of heap sizes."""
        game = Nim()
        assert game.nim_sum(game.initial_state(heaps=(3, 4, 5))) == 2
        assert game.nim_sum(game.initial_state(heaps=(1, 2, 3))) == 0

    def test_determinization_is_identity(self):
        """Test perfect information leaves nothing to sample."""
        game = Nim()
        state = game.initial_state()

        assert game.sample_determinization(state, 0, np.random.default_rng(0)) is state
        assert game.information_set_key(state, 0) == game.information_set_key(state, 1)

    def test_move_str(self):
        """Test the compact move notation."""
        assert str(NimMove(heap=2, amount=3)) == "3@2"


class TestKuhnPoker:
    """Tests for Kuhn poker."""

    def test_betting_structure(self):
        """Test the legal actions of every decision point."""
        game = KuhnPoker()
        state = game.initial_state('K', 'Q')

        assert game.legal_actions(state) == [CHECK, BET]
        assert game.legal_actions(game.apply(state, CHECK)) == [CHECK, BET]
        assert game.legal_actions(game.apply(state, BET)) == [FOLD, CALL]
        assert game.legal_actions(KuhnState(('K', 'Q'), (CHECK, BET))) == [FOLD, CALL]

    def test_acting_player_alternates(self):
        """Test players alternate starting with player 0."""
        game = KuhnPoker()
        state = game.initial_state('K', 'Q')

        assert game.acting_player(state) == 0
        assert game.acting_player(game.apply(state, CHECK)) == 1
        assert game.acting_player(KuhnState(('K', 'Q'), (CHECK, BET))) == 0

    def test_illegal_action_raises(self):
        """Test betting actions out of turn are rejected."""
        game = KuhnPoker()

        with pytest.raises(KuhnException):
            game.apply(game.initial_state('K', 'Q'), CALL)

    @pytest.mark.parametrize(
        "cards,history,expected",
        [
            (('K', 'Q'), (CHECK, CHECK), {0: 1.0, 1: -1.0}),
            (('J', 'Q'), (CHECK, CHECK), {0: -1.0, 1: 1.0}),
            (('K', 'J'), (BET, CALL), {0: 2.0, 1: -2.0}),
            (('Q', 'K'), (BET, CALL), {0: -2.0, 1: 2.0}),
            (('J', 'K'), (BET, FOLD), {0: 1.0, 1: -1.0}),
            (('K', 'J'), (CHECK, BET, FOLD), {0: -1.0, 1: 1.0}),
            (('Q', 'J'), (CHECK, BET, CALL), {0: 2.0, 1: -2.0}),
        ],
    )
    def test_rewards(self, cards, history, expected):
        """Test net chip balances at every terminal history."""
        game = KuhnPoker()
        state = KuhnState(cards, history)

        assert game.is_terminal(state)
        assert game.reward(state) == expected

    def test_reward_before_showdown_raises(self):
        """Test rewards are only defined for finished hands."""
        game = KuhnPoker()

        with pytest.raises(KuhnException):
            game.reward(game.initial_state('K', 'Q'))

    def test_invalid_cards(self):
        """Test unknown or duplicated cards are rejected."""
        game = KuhnPoker()

        with pytest.raises(ValueError):
            game.initial_state('A', 'K')
        with pytest.raises(ValueError):
            game.initial_state('K', 'K')

    def test_view_hides_opponent_card(self):
        """Test each player sees only its own card."""
        state = KuhnState(('K', 'Q'), (CHECK,))

        assert state.view(0) == KuhnState(('K', HIDDEN), (CHECK,))
        assert state.view(1) == KuhnState((HIDDEN, 'Q'), (CHECK,))

    def test_information_set_key_ignores_opponent_card(self):
        """Test states differing only in the opponent card share a key."""
        game = KuhnPoker()

        assert game.information_set_key(KuhnState(('K', 'Q')), 0) == \
            game.information_set_key(KuhnState(('K', 'J')), 0)
        assert game.information_set_key(KuhnState(('K', 'Q')), 1) != \
            game.information_set_key(KuhnState(('K', 'J')), 1)

    def test_deal(self):
        """Test dealing gives two distinct real cards."""
        game = KuhnPoker()
        rng = np.random.default_rng(0)

        for _ in range(20):
            state = game.deal(rng)
            assert len(set(state.cards)) == 2
            assert HIDDEN not in state.cards
            assert state.history == ()

    @pytest.mark.parametrize(
        "card,history,expected",
        [
            ('K', (CHECK,), BET),
            ('K', (BET,), CALL),
            ('Q', (CHECK,), CHECK),
            ('J', (BET,), FOLD),
        ],
    )
    def test_equilibrium_pure_actions(self, card, history, expected):
        """Test the equilibrium player's deterministic choices."""
        state = KuhnState((HIDDEN, card), history)

        assert second_player_equilibrium_action(state, np.random.default_rng(0)) == expected

    def test_equilibrium_mixed_actions(self):
        """Test Q calls a bet about a third of the time."""
        state = KuhnState((HIDDEN, 'Q'), (BET,))
        rng = np.random.default_rng(0)

        calls = sum(second_player_equilibrium_action(state, rng) == CALL for _ in range(3000))

        assert 850 < calls < 1150

    def test_equilibrium_player_one_only(self):
        """Test the equilibrium player refuses to act for player 0."""
        with pytest.raises(KuhnException):
            second_player_equilibrium_action(KuhnState(('K', 'Q')), np.random.default_rng(0))


class TestToyGames:
    """Tests for the synthetic games."""

    def test_single_decision(self):
        """Test A pays 1 and B pays 0."""
        game = SingleDecisionGame()
        state = game.initial_state()

        assert game.legal_actions(state) == ['A', 'B']
        assert game.reward(game.apply(state, 'A')) == {0: 1.0}
        assert game.reward(game.apply(state, 'B')) == {0: 0.0}

    def test_hidden_availability(self):
        """Test the legal action depends on the hidden value only."""
        game = HiddenAvailabilityGame()

        assert game.legal_actions(HiddenState(hidden=1)) == ['A']
        assert game.legal_actions(HiddenState(hidden=2)) == ['B']
        assert game.information_set_key(HiddenState(hidden=1), 0) == \
            game.information_set_key(HiddenState(hidden=2), 0)

        rng = np.random.default_rng(0)
        hidden = {game.sample_determinization(game.initial_state(), 0, rng).hidden for _ in range(50)}
        assert hidden == {1, 2}

    def test_noisy_bandit_best_arm(self):
        """Test the best arm is the most likely winner."""
        game = NoisyBanditGame()

        assert game.best_arm == 'c'
        state = game.apply(game.sample_determinization(game.initial_state(), 0, np.random.default_rng(0)), 'c')
        assert game.is_terminal(state)
        assert game.reward(state)[0] in (0.0, 1.0)

    def test_ten_move_game(self):
        """Test the last pick decides the winner."""
        game = TenMoveGame()
        state = game.apply(game.apply(game.initial_state(), 4), 1)

        assert game.is_terminal(state)
        assert game.legal_actions(state) == []
        assert game.reward(state) == {0: 0.0, 1: 1.0}


class TestProtocol:
    """Test every example satisfies the GameModel protocol."""

    @pytest.mark.parametrize(
        "game",
        [Nim(), KuhnPoker(), SingleDecisionGame(), HiddenAvailabilityGame(), NoisyBanditGame(), TenMoveGame()],
    )
    def test_is_game_model(self, game):
        assert isinstance(game, GameModel)
