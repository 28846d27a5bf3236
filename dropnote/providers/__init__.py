"""Concrete adapters for the indexer's external collaborators."""
