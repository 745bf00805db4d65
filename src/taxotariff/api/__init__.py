"""HTTP surface for category resolution and metadata curation."""
