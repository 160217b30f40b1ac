"""
Infrastructure Layer - Storage and External Systems

Contains:
- index: Local hybrid index (BM25 lexical index, LanceDB vector store, RRF)
- embedding: Text embedding providers
- sources: Paper source capability, HTTP base client, peer provider
"""
