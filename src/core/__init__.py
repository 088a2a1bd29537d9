"""Core domain package for codescope.

Core contains classification, crawling, and persistence rules without any
Telegram or storage-specific code, keeping the archival logic portable.
"""
