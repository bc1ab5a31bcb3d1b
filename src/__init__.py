"""HN-Sort-Validator core source package.

This package contains the components of the scrape-and-validate pipeline:
- browser: Playwright browser lifecycle and the PageQuery capability
- extractor: per-page article extraction with field fallbacks
- scraper: pagination walk with a bounded accumulator
- timeparse: relative age normalization
- validator: article schemas and newest-first ordering validation
- coordinator: single-flight run orchestration and the latest result
- reporter: CSV/JSON exports and the Plotly dashboard
- api: FastAPI service boundary
- logger: loguru configuration
- exceptions: custom exception hierarchy
"""

__version__ = "1.0.0"
