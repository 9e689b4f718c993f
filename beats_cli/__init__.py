"""
beats-cli: a terminal playlist player that reads display metadata and cover
art from the tags embedded in each track.
"""

__version__ = "0.3.0"
