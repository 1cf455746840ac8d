"""
Extract LinkedIn Learning course transcripts with a driven browser and
render them as Markdown/HTML, optionally with AI summaries and reviews.
"""

__version__ = "0.1.0"
