"""Embedding Module - job/preference embeddings and vector store interface."""
from matching.embedding.service import EmbeddingService
from matching.embedding.store import JobEmbeddingStore, InMemoryJobEmbeddingStore

__all__ = ['EmbeddingService', 'JobEmbeddingStore', 'InMemoryJobEmbeddingStore']
