"""Route comparison: hub catalog, scoring and the direct-vs-stopover optimizer."""
