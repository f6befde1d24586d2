"""site_mapper.crawler: fetching and site traversal."""
