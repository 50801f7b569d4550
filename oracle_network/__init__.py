"""Staked price oracle network with consensus aggregation and incentives."""

__version__ = "0.1.0"
