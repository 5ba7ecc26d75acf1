"""News fetching and knowledge ingestion."""
