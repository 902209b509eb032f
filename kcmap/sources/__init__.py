"""Feature sources. See kcmap.source_base for the interface."""
