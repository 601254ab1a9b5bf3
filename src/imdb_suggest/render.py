"""
Rendering of catalogs as display cards.
"""

from dataclasses import dataclass

from jinja2 import Environment, PackageLoader, select_autoescape

from .models import Catalog

NO_RESULTS_HTML = "<p>No results.</p>"
FAILED_HTML = "<p>Failed to load.</p>"

_env = Environment(
    loader=PackageLoader("imdb_suggest", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass(frozen=True)
class Card:
    """What one result card shows."""

    id: str
    title: str
    kind: str
    year: int | None
    rank: int | float | None
    href: str
    image_url: str | None = None


def build_cards(catalog: Catalog) -> list[Card]:
    return [
        Card(
            id=e.id,
            title=e.title,
            kind=e.kind,
            year=e.year,
            rank=e.rank,
            href=e.href,
            image_url=e.image_url,
        )
        for e in catalog.entries
    ]


def render_cards_html(catalog: Catalog | None) -> str:
    """Render a catalog as HTML cards; empty catalogs get a placeholder."""
    if catalog is None or not catalog.entries:
        return NO_RESULTS_HTML
    template = _env.get_template("cards.html")
    return template.render(cards=build_cards(catalog)).strip()
