"""
Place Import service.

Resolves Google Maps links, place names and postal addresses to a single
normalized place record.
"""
