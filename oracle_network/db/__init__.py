"""Persistence of the network event stream."""
