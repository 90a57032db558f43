#!/usr/bin/env python3
"""
Gardena Catalog Scraper

Expands the combisystem product listing in a headless browser, parses every
product card, translates product names into Russian and writes one directory
per product with its image and a data.csv record.
"""

import argparse
import asyncio
import csv
import logging
import re
import shutil
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from catalog_parser import CatalogParser, ProductRecord
from playwright_loader import CatalogBrowser
from translator import TranslationClient, translate_all


# ============================================================================
# Logging
# ============================================================================

class ScraperLogger:
    """Centralized logging system for the scraper."""

    def __init__(self, log_dir: str = "logs"):
        """Initialize logger with an activity log and an error CSV.

        Args:
            log_dir: Directory to store log files
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger("CatalogScraper")
        self.logger.setLevel(logging.DEBUG)
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        # Console handler for user-facing messages
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter('%(message)s'))

        # File handler for detailed logs
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        file_handler = logging.FileHandler(
            self.log_dir / f"scraper_{timestamp}.log", encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

        self.logger.addHandler(console_handler)
        self.logger.addHandler(file_handler)

        self.error_log_path = self.log_dir / f"errors_{timestamp}.csv"
        self._init_error_log()

    def _init_error_log(self):
        """Initialize the error log CSV file."""
        with open(self.error_log_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(['timestamp', 'stage', 'error_type', 'error_message', 'url'])

    def log_error(self, stage: str, error_type: str, error_message: str, url: str = ""):
        """Log an error to both console and CSV file.

        Args:
            stage: Pipeline stage (e.g., 'load', 'translate', 'materialize')
            error_type: Short error category
            error_message: Detailed error message
            url: URL involved, if any
        """
        self.logger.error(f"Error in {stage}: {error_type} - {error_message}")

        with open(self.error_log_path, 'a', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow([
                datetime.now().isoformat(), stage, error_type, error_message, url
            ])

    def info(self, message: str):
        """Log an info message."""
        self.logger.info(message)

    def debug(self, message: str):
        """Log a debug message."""
        self.logger.debug(message)

    def warning(self, message: str):
        """Log a warning message."""
        self.logger.warning(message)


# ============================================================================
# Site Configuration
# ============================================================================

@dataclass
class SiteConfig:
    """Selectors and timing for the Gardena listing."""
    listing_url: str = 'https://www.gardena.com/int/products/soil-ground/combisystem'
    base_url: str = 'https://www.gardena.com'

    cookie_button_selector: str = '#onetrust-accept-btn-handler'
    load_more_selector: str = (
        '#products-accessories > div > div.grid-footer.row.m-0.p-0 > div.show-more > div > a'
    )
    card_selector: str = '.product'
    heading_selector: str = 'h4'
    article_selector: str = '.article-number'

    viewport: Tuple[int, int] = (1080, 1024)
    load_more_delay: float = 1.0
    max_load_more_clicks: Optional[int] = 500
    # 0 disables Playwright timeouts
    timeout_ms: float = 0

    target_lang: str = 'ru'


# ============================================================================
# Asset Materializer
# ============================================================================

CSV_HEADER = ['Link', 'Image', 'Name EN', 'Name RU', 'Article Number']
ILLEGAL_PATH_CHARS = re.compile(r'[/\\?%*:|"<>]')


def sanitize_name(name: str) -> str:
    """Replace characters illegal in file paths with underscores."""
    return ILLEGAL_PATH_CHARS.sub('_', name)


def product_dir_name(record: ProductRecord) -> str:
    """Directory name for a product: <sanitized Russian name>_<article number>."""
    return f"{sanitize_name(record.name_ru)}_{record.article_number}"


class AssetMaterializer:
    """Writes one directory per product with its image and data.csv."""

    def __init__(self, browser, output_dir: Path, logger: ScraperLogger):
        """Initialize the materializer.

        Args:
            browser: CatalogBrowser used to fetch images
            output_dir: Root of the output tree, wiped on every run; data.csv
                cites absolute image paths under it
            logger: Logger instance
        """
        self.browser = browser
        self.output_dir = Path(output_dir).absolute()
        self.logger = logger

    def prepare_output_dir(self):
        """Remove any previous output tree and create an empty root."""
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
            self.logger.debug(f"Removed previous output: {self.output_dir}")
        self.output_dir.mkdir(parents=True)

    async def materialize(self, records: List[ProductRecord]) -> Dict[str, int]:
        """Write every record to disk, one product at a time.

        Args:
            records: Translated product records

        Returns:
            Counters for products written, images saved and images skipped
        """
        stats = {'products_written': 0, 'images_saved': 0, 'images_skipped': 0}

        self.prepare_output_dir()

        for idx, record in enumerate(records, 1):
            product_dir = self.output_dir / product_dir_name(record)
            # Duplicate names raise FileExistsError
            product_dir.mkdir()

            image_path = product_dir / 'image.png'
            if record.image.startswith('http'):
                if await self.browser.fetch_image(record.image, image_path):
                    stats['images_saved'] += 1
                else:
                    stats['images_skipped'] += 1
                    self.logger.log_error(
                        'materialize', 'ImageFetch',
                        f"No image saved for {record.article_number}", record.image
                    )

            self.write_record(product_dir / 'data.csv', record, image_path)
            stats['products_written'] += 1
            self.logger.debug(f"[{idx}/{len(records)}] Wrote {product_dir.name}")

        return stats

    @staticmethod
    def write_record(csv_path: Path, record: ProductRecord, image_path: Path):
        """Write the header and a single fully-quoted data row.

        The Image column holds the intended local image path even when no
        image was downloaded.
        """
        with open(csv_path, 'w', newline='', encoding='utf-8') as f:
            csv.writer(f, lineterminator='\n').writerow(CSV_HEADER)
            csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator='\n').writerow([
                record.link,
                str(image_path),
                record.name_en,
                record.name_ru,
                record.article_number,
            ])


# ============================================================================
# Main Scraper Class
# ============================================================================

class CatalogScraper:
    """Runs load -> parse -> translate -> materialize once."""

    def __init__(self, output_dir: str = "build",
                 log_dir: str = "logs",
                 site_config: Optional[SiteConfig] = None,
                 headless: bool = True):
        """Initialize the scraper.

        Args:
            output_dir: Output root, removed and rebuilt on every run
            log_dir: Directory for log files
            site_config: Site selectors and timing (defaults to Gardena)
            headless: Run the browser without a window
        """
        self.output_dir = Path(output_dir)
        self.site_config = site_config or SiteConfig()
        self.headless = headless

        self.logger = ScraperLogger(log_dir)
        self.parser = CatalogParser(
            self.site_config.base_url,
            self.logger,
            card_selector=self.site_config.card_selector,
            heading_selector=self.site_config.heading_selector,
            article_selector=self.site_config.article_selector,
        )

        self.stats = {
            'products_parsed': 0,
            'products_written': 0,
            'images_saved': 0,
            'images_skipped': 0,
        }

    def open_browser(self):
        """Create the browser session context manager."""
        return CatalogBrowser(self.logger, self.site_config, headless=self.headless)

    def open_translator(self):
        """Create the translation client context manager."""
        timeout = self.site_config.timeout_ms / 1000 if self.site_config.timeout_ms else None
        return TranslationClient(self.logger, timeout=timeout)

    async def run(self) -> List[ProductRecord]:
        """Execute the scraping pipeline.

        Returns:
            The translated records that were written
        """
        self.logger.info("=" * 60)
        self.logger.info("Gardena Catalog Scraper")
        self.logger.info("=" * 60)

        async with self.open_browser() as browser:
            page = await browser.load_catalog()
            html = await page.content()

            records = self.parser.parse(html)
            self.stats['products_parsed'] = len(records)

            self.logger.info(f"Translating {len(records)} product names "
                             f"to '{self.site_config.target_lang}'")
            async with self.open_translator() as translator:
                records = await translate_all(records, translator,
                                              self.site_config.target_lang)

            materializer = AssetMaterializer(browser, self.output_dir, self.logger)
            self.stats.update(await materializer.materialize(records))

        self._print_summary()
        return records

    def _print_summary(self):
        """Print final summary statistics."""
        self.logger.info("\n" + "=" * 60)
        self.logger.info("SCRAPING COMPLETE")
        self.logger.info("=" * 60)
        self.logger.info(f"Products parsed: {self.stats['products_parsed']}")
        self.logger.info(f"Product directories written: {self.stats['products_written']}")
        self.logger.info(f"Images saved: {self.stats['images_saved']}")
        self.logger.info(f"Images skipped: {self.stats['images_skipped']}")
        self.logger.info(f"\nOutput directory: {self.output_dir.absolute()}")
        self.logger.info(f"Error log: {self.logger.error_log_path}")


# ============================================================================
# Main Entry Point
# ============================================================================

def non_negative_int(value: str) -> int:
    """argparse type for counts where 0 means unlimited."""
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description='Gardena Catalog Scraper - listing to per-product folders',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  # Scrape into ./build with default settings
  python catalog_scraper.py

  # Slower expansion, give up after 50 load-more clicks
  python catalog_scraper.py --delay 2 --max-clicks 50

  # Fail instead of hanging when the site stops answering
  python catalog_scraper.py --timeout 60000
        '''
    )

    parser.add_argument(
        '--output',
        type=str,
        default='build',
        metavar='DIR',
        help='Output directory, removed and rebuilt on every run (default: build/)'
    )

    parser.add_argument(
        '--log-dir',
        type=str,
        default='logs',
        metavar='DIR',
        help='Directory for log files (default: logs/)'
    )

    parser.add_argument(
        '--delay',
        type=float,
        default=1.0,
        metavar='SECONDS',
        help='Wait after each load-more click (default: 1.0)'
    )

    parser.add_argument(
        '--max-clicks',
        type=non_negative_int,
        default=500,
        metavar='N',
        help='Maximum load-more clicks, 0 for unlimited (default: 500)'
    )

    parser.add_argument(
        '--timeout',
        type=float,
        default=0,
        metavar='MS',
        help='Browser and translation timeout in milliseconds, 0 for none (default: 0)'
    )

    parser.add_argument(
        '--headed',
        action='store_true',
        help='Show the browser window'
    )

    return parser


def main():
    """Main entry point with CLI argument parsing."""
    args = build_arg_parser().parse_args()

    site_config = SiteConfig(
        load_more_delay=args.delay,
        max_load_more_clicks=args.max_clicks or None,
        timeout_ms=args.timeout,
    )

    scraper = CatalogScraper(
        output_dir=args.output,
        log_dir=args.log_dir,
        site_config=site_config,
        headless=not args.headed,
    )

    try:
        asyncio.run(scraper.run())
    except Exception as e:
        scraper.logger.log_error('pipeline', type(e).__name__, str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
