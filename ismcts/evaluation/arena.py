"""
Arena for agent vs agent evaluation.

This module plays complete games between agents and records per-agent
rewards. Used to check that a search configuration beats a baseline (a
random player, a fixed strategy, or another search configuration).
"""

import dataclasses
import logging
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence

import numpy as np

from ismcts.config import SearchConfig
from ismcts.game.interface import GameModel
from ismcts.mcts.policy import RolloutPolicy
from ismcts.mcts.search import ISMCTS, SearchStatus

logger = logging.getLogger(__name__)


class RandomAgent:
    """Plays uniformly among the legal actions."""

    name = 'random'

    def act(self, game: GameModel, state: Any, player: Hashable, rng: np.random.Generator):
        legal_actions = list(game.legal_actions(state))
        return legal_actions[int(rng.integers(len(legal_actions)))]


class PolicyAgent:
    """Wraps a function ``policy(state, rng) -> action``."""

    def __init__(self, policy: Callable[[Any, np.random.Generator], Hashable], name: str = 'policy'):
        self.policy = policy
        self.name = name

    def act(self, game: GameModel, state: Any, player: Hashable, rng: np.random.Generator):
        return self.policy(state, rng)


class ISMCTSAgent:
    """
    Chooses moves with a fresh IS-MCTS search per decision.

    The agent receives the true state, but the search only ever works on
    determinizations sampled from the player's information set, so hidden
    information does not leak into the decision.

    Attributes:
        config: Search configuration; the seed is redrawn for every decision
        rollout_policy: Optional rollout policy passed to ISMCTS
    """

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        rollout_policy: Optional[RolloutPolicy] = None,
        name: str = 'ismcts',
    ):
        self.config = config if config is not None else SearchConfig()
        self.rollout_policy = rollout_policy
        self.name = name

    def act(self, game: GameModel, state: Any, player: Hashable, rng: np.random.Generator):
        config = dataclasses.replace(self.config, seed=int(rng.integers(2**31)))
        result = ISMCTS(game, config, self.rollout_policy).search(state, player)
        if result.status is SearchStatus.NO_DECISION_REQUIRED:
            raise ValueError("Agent asked to act in a terminal state")
        return result.action


class Arena:
    """
    Plays matches between agents on one game.

    Attributes:
        game: Game model
        deal: Function ``deal(rng) -> state`` producing a new game
        players: Player ids in seat order
    """

    def __init__(
        self,
        game: GameModel,
        deal: Callable[[np.random.Generator], Any],
        players: Sequence[Hashable] = (0, 1),
    ):
        self.game = game
        self.deal = deal
        self.players = list(players)

    def play_game(
        self,
        agents: Dict[Hashable, Any],
        rng: np.random.Generator,
    ) -> Dict[Hashable, float]:
        """
        Play one game to the end.

        Args:
            agents: Mapping player id -> agent controlling that player
            rng: Generator for the deal and the agents

        Returns:
            Terminal reward of every player
        """
        state = self.deal(rng)
        while not self.game.is_terminal(state):
            player = self.game.acting_player(state)
            action = agents[player].act(self.game, state, player, rng)
            state = self.game.apply(state, action)
        return dict(self.game.reward(state))

    def play_match(
        self,
        agents: List[Any],
        num_games: int = 100,
        seed: Optional[int] = None,
        rotate_seats: bool = True,
        verbose: bool = True,
    ) -> Dict[str, Any]:
        """
        Play a match between agents.

        With rotate_seats, agent i plays seat (i + g) mod n in game g so every
        agent plays every seat equally often.

        Args:
            agents: One agent per seat
            num_games: Number of games to play
            seed: Seed for deals and agent decisions
            rotate_seats: Rotate agents through seats between games
            verbose: Log progress messages

        Returns:
            Match results:
            - games_played: Total games played
            - mean_rewards: Mean reward per agent (agent order)
            - total_rewards: Total reward per agent
            - wins: Games in which each agent had the strictly highest reward
            - draws: Games without a unique best reward
        """
        if len(agents) != len(self.players):
            raise ValueError(
                f"Need {len(self.players)} agents, got {len(agents)}"
            )

        rng = np.random.default_rng(seed)
        num_agents = len(agents)
        rewards = np.zeros((num_games, num_agents))
        wins = [0] * num_agents
        draws = 0

        if verbose:
            logger.info(
                "Starting match: %d games between %s",
                num_games,
                ", ".join(getattr(a, 'name', type(a).__name__) for a in agents),
            )

        for game_idx in range(num_games):
            shift = game_idx % num_agents if rotate_seats else 0
            seat_of_agent = [(i + shift) % num_agents for i in range(num_agents)]
            seating = {
                self.players[seat_of_agent[i]]: agents[i] for i in range(num_agents)
            }

            outcome = self.play_game(seating, rng)
            for i in range(num_agents):
                rewards[game_idx, i] = outcome.get(self.players[seat_of_agent[i]], 0.0)

            best = rewards[game_idx].max()
            winners = np.flatnonzero(rewards[game_idx] == best)
            if len(winners) == 1:
                wins[int(winners[0])] += 1
            else:
                draws += 1

            if verbose and (game_idx + 1) % 50 == 0:
                logger.info(
                    "Progress: %d/%d games, mean rewards %s",
                    game_idx + 1,
                    num_games,
                    np.round(rewards[: game_idx + 1].mean(axis=0), 3).tolist(),
                )

        results = {
            'games_played': num_games,
            'mean_rewards': rewards.mean(axis=0).tolist() if num_games else [0.0] * num_agents,
            'total_rewards': rewards.sum(axis=0).tolist(),
            'wins': wins,
            'draws': draws,
        }

        if verbose:
            logger.info("Match complete: %s", results)

        return results
