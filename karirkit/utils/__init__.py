"""
Utilities - File text extraction.
"""
