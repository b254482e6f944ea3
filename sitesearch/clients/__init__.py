"""HTTP clients for the CMS and the two search sources."""
