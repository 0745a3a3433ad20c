"""Details links for the report: a label plus a knowledge-base search URL for a query."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote_plus

DEFAULT_SEARCH_URL = "https://support.apple.com/kb/index?page=search&q="
DETAILS_LABEL = "[Click for details]"


@dataclass(frozen=True)
class DetailsLink:
    label: str
    url: str


def get_details_url_for(query: str, base_url: str = DEFAULT_SEARCH_URL) -> DetailsLink:
    return DetailsLink(label=DETAILS_LABEL, url=f"{base_url}{quote_plus(query or '')}")
