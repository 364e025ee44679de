"""
KarirKit Salary Benchmark
Salary benchmarking for job seekers, grounded in a knowledge base.

Architecture:
- MongoDB: Salary requests, KB vectors (text + embedding), cached results
- Hybrid retrieval: Vector similarity + keyword search, weighted and merged
- Gemini AI: Embeddings and benchmark generation
"""

__version__ = "1.0.0"
