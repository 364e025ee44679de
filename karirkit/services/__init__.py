"""
Services module - AI client, MongoDB services, retrieval, benchmark and ingestion.
"""
