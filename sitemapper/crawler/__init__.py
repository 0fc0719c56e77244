"""sitemapper.crawler: URL normalization, fetching, link extraction and BFS traversal."""
