"""Query engine, live-search controller and result rendering."""
