"""Acquisition, cache and library services."""
