"""site_mapper.parser: sitemap parsing, platform classification and content extraction."""
