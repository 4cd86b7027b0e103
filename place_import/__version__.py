"""
Version information for Place Import.

This module contains the version information for the Place Import service.
It is used by packaging and by the application to display version information.
"""

__version__ = "0.4.0"
__author__ = "Place Import Team"
__description__ = "Resolve Google Maps links, names and addresses to normalized places"
