"""
Receipt ingestion: validate → dedup → store → extract → normalize → persist.
"""
