"""Evaluation, search and end-game play for Sternhalma."""
