"""
Query expansion for imdb-suggest.

The suggestion endpoint only returns a handful of results per probe, so a
single term is fanned out into lightweight variations (suffix words, letters,
digits). With no term at all we fall back to a fixed seed list ("discovery
mode").
"""

from string import ascii_lowercase, digits

from .config import SuggestConfig

VARIATION_SUFFIXES = ("movie", "series", "season")

DISCOVERY_SEEDS = ("the", "new", "best", "top", "movie", "series", "2024", "2025")


def _dedupe(queries: list[str], cap: int) -> list[str]:
    """Drop repeats (first seen wins) and truncate to cap."""
    return list(dict.fromkeys(queries))[: max(1, cap)]


def expand_queries(
    term: str | None,
    use_variations: bool,
    *,
    max_queries_search: int = 40,
    max_queries_discover: int = 40,
) -> list[str]:
    """
    Turn a search term into the list of probes to send.

    Args:
        term: User input (already trimmed); empty or None selects
            discovery mode
        use_variations: Append suffix/letter/digit variations to the term
        max_queries_search: Cap when a term is given
        max_queries_discover: Cap in discovery mode

    Returns:
        Deduplicated query strings, in probe order
    """
    base = term or ""

    if base:
        queries = [base]
        if use_variations:
            queries.extend(f"{base} {suffix}" for suffix in VARIATION_SUFFIXES)
            queries.extend(f"{base} {ch}" for ch in ascii_lowercase)
            queries.extend(f"{base} {d}" for d in digits)
        return _dedupe(queries, max_queries_search)

    queries = list(DISCOVERY_SEEDS)
    queries.extend(ascii_lowercase)
    return _dedupe(queries, max_queries_discover)


def expand_for_config(
    term: str | None, use_variations: bool, config: SuggestConfig
) -> list[str]:
    """Expand a term using the caps from config."""
    return expand_queries(
        term,
        use_variations,
        max_queries_search=config.max_queries_search,
        max_queries_discover=config.max_queries_discover,
    )
