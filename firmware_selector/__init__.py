"""
Package-index ingestion and package-selection engine for OpenWrt firmware builds.
"""

__version__ = "0.1.0"
