"""
NMS Glyph Generator - portal addresses and the wiki region directory.
"""

from .address_builder import AddressResult, AddressStatus, build_address
from .directory import Directory, RegionEntry, build_directory, merge_directories
from .glyph_codec import coordinates_to_glyphs, format_glyph, generate_glyphs
from .pipeline import CrawlResult, DirectoryPipeline
from .wiki_client import FetchError

__version__ = "1.0.0"
