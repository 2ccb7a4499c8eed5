"""Concrete adapters for the interfaces in :mod:`novelshelf.interfaces`."""
