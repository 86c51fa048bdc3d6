"""
Utility helpers for the Blog Crawler
"""
