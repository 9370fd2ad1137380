"""Gig market: the lifecycle rules every posted gig moves through."""

from gigledger.market.gig_state_machine import GigStateMachine

__all__ = ["GigStateMachine"]
