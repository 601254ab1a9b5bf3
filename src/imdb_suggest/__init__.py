"""
imdb-suggest: IMDb suggestion aggregator.

Expands a search term into many autocomplete probes, fetches them under
strict concurrency and time budgets, and merges the partial answers into a
deduplicated, rank-ordered catalog of titles.
"""

__version__ = "0.1.0"
