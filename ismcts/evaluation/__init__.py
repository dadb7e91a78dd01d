"""Agents and match play for evaluating searches."""

from ismcts.evaluation.arena import Arena, ISMCTSAgent, RandomAgent, PolicyAgent

__all__ = ['Arena', 'ISMCTSAgent', 'RandomAgent', 'PolicyAgent']
