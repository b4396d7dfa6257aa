"""LinkedIn post reactors scraper: PhantomBuster orchestration, normalization and storage."""
