"""
Product retrieval and reply generation.
"""
