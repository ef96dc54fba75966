"""Local Business Website Enrichment

A tool for guessing the official websites of local businesses discovered
around a map location, by searching the web and scoring the candidate URLs.
"""

__version__ = "0.1.0"
__description__ = "Website enrichment for locally discovered businesses"
