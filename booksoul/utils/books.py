"""
Book display helpers shared by the Curator and Presenter stages.

Ids, cover images and purchase links are derived from the title/author
only, so the same book always gets the same cover and links.
"""

import re
import time
from urllib.parse import quote

from booksoul.schemas.recommendations import BookDetails, PurchaseLinks
from booksoul.utils.locale import get_list, t, translate_difficulty

COVER_IMAGES = [
    "https://images.pexels.com/photos/1741230/pexels-photo-1741230.jpeg?auto=compress&cs=tinysrgb&w=400",
    "https://images.pexels.com/photos/1370295/pexels-photo-1370295.jpeg?auto=compress&cs=tinysrgb&w=400",
    "https://images.pexels.com/photos/1002638/pexels-photo-1002638.jpeg?auto=compress&cs=tinysrgb&w=400",
    "https://images.pexels.com/photos/159866/books-book-pages-read-literature-159866.jpeg?auto=compress&cs=tinysrgb&w=400",
    "https://images.pexels.com/photos/46274/pexels-photo-46274.jpeg?auto=compress&cs=tinysrgb&w=400",
    "https://images.pexels.com/photos/256541/pexels-photo-256541.jpeg?auto=compress&cs=tinysrgb&w=400",
    "https://images.pexels.com/photos/1029141/pexels-photo-1029141.jpeg?auto=compress&cs=tinysrgb&w=400",
    "https://images.pexels.com/photos/694740/pexels-photo-694740.jpeg?auto=compress&cs=tinysrgb&w=400",
]

SHORT_BOOK_PAGES = 200
LONG_BOOK_PAGES = 400

_NON_ID_CHARS = re.compile(r"[^a-z0-9]")
# Characters left unescaped by JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _normalize_for_id(value: str) -> str:
    return _NON_ID_CHARS.sub("_", value.lower())


def book_key(title: str, author: str) -> str:
    """<title>_<author> with every non [a-z0-9] character folded to "_"."""
    return f"{_normalize_for_id(title)}_{_normalize_for_id(author)}"


def generate_book_id(title: str, author: str) -> str:
    """ai_book_<title>_<author>_<epoch ms>"""
    timestamp = int(time.time() * 1000)
    return f"ai_book_{book_key(title, author)}_{timestamp}"


def title_hash(title: str) -> int:
    """32-bit signed string hash (h * 31 + ord(c)) used to pick cover images."""
    h = 0
    for char in title:
        h = ((h << 5) - h + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def generate_cover_url(title: str) -> str:
    return COVER_IMAGES[abs(title_hash(title)) % len(COVER_IMAGES)]


def generate_purchase_links(title: str, author: str) -> PurchaseLinks:
    query = quote(f"{title} {author}", safe=_URI_COMPONENT_SAFE)
    return PurchaseLinks(
        amazon=f"https://amazon.com/s?k={query}",
        empik=f"https://empik.com/szukaj/produkt?q={query}",
        tania_ksiazka=f"https://taniaksiazka.pl/szukaj?q={query}",
    )


def generate_book_details(page_count: int, complexity: str, language: str) -> BookDetails:
    """Localized length / reading-time block bucketed by page count."""
    if page_count < SHORT_BOOK_PAGES:
        bucket = "short"
    elif page_count > LONG_BOOK_PAGES:
        bucket = "long"
    else:
        bucket = "medium"

    return BookDetails(
        length=t(language, "length_format", label=t(language, f"length_{bucket}"), pages=page_count),
        difficulty=translate_difficulty(complexity, language),
        format=get_list(language, "formats"),
        reading_time=t(language, f"reading_time_{bucket}"),
    )


def default_book_details(language: str) -> BookDetails:
    """Medium-length details for a book whose own details could not be built."""
    return BookDetails(
        length=t(language, "length_medium"),
        difficulty=translate_difficulty("medium", language),
        format=get_list(language, "formats"),
        reading_time=t(language, "reading_time_medium"),
    )
