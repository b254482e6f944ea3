"""Index builders: CMS content index and static page index."""
