#!/usr/bin/env python3
"""
Catalog markup parser.

Turns a fully-expanded listing page snapshot into an ordered list of
ProductRecord entries, one per product card.
"""

from dataclasses import dataclass, asdict
from typing import Dict, List

from bs4 import BeautifulSoup

ARTICLE_LABEL = 'Article No. '


@dataclass(frozen=True)
class ProductRecord:
    """One product card scraped from the listing page."""
    link: str
    image: str
    name_en: str
    article_number: str
    name_ru: str = ''

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for serialization."""
        return asdict(self)


def normalize_image_url(src: str) -> str:
    """Rewrite a protocol-relative image URL to https, keep anything else."""
    if src.startswith('//'):
        return 'https:' + src
    return src


def clean_article_number(text: str) -> str:
    """Strip whitespace and the leading 'Article No. ' label."""
    text = text.strip()
    if text.startswith(ARTICLE_LABEL):
        text = text[len(ARTICLE_LABEL):]
    return text


class CatalogParser:
    """Extracts product records from listing page HTML."""

    def __init__(self, base_url: str, logger=None,
                 card_selector: str = '.product',
                 heading_selector: str = 'h4',
                 article_selector: str = '.article-number'):
        """Initialize the parser.

        Args:
            base_url: Site root prepended to every product href
            logger: Optional logger instance
            card_selector: CSS selector of a product card
            heading_selector: CSS selector of the name inside a card
            article_selector: CSS selector of the article number inside a card
        """
        self.base_url = base_url
        self.logger = logger
        self.card_selector = card_selector
        self.heading_selector = heading_selector
        self.article_selector = article_selector

    def parse(self, html: str) -> List[ProductRecord]:
        """Parse a markup snapshot into records, in document order.

        Args:
            html: Page HTML after the listing has been fully expanded

        Returns:
            List of ProductRecord with name_ru left empty
        """
        soup = BeautifulSoup(html, 'lxml')
        cards = soup.select(self.card_selector)

        records = [self._parse_card(card) for card in cards]

        if self.logger:
            self.logger.info(f"Parsed {len(records)} product cards")
        return records

    def _parse_card(self, card) -> ProductRecord:
        anchor = card.find('a')
        href = anchor.get('href', '') if anchor else ''

        img = card.find('img')
        src = img.get('src', '') if img else ''

        return ProductRecord(
            link=self.base_url + href,
            image=normalize_image_url(src),
            name_en=self._text(card, self.heading_selector),
            article_number=clean_article_number(self._text(card, self.article_selector)),
        )

    @staticmethod
    def _text(card, selector: str) -> str:
        # Concatenates every match, as the listing may split a name across nodes
        return ''.join(el.get_text() for el in card.select(selector))
