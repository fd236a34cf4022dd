"""reqcache: content-addressed generation cache and consistency validation."""
