#!/usr/bin/env python3
"""
Job Embedding Store - Interface for persisting job embeddings.

Provides abstraction layer for persistence operations. A production vector
index (pgvector, a hosted vector DB, ...) plugs in by implementing
``JobEmbeddingStore``.
"""
from typing import Protocol, runtime_checkable, List, Dict, Tuple, Optional

import numpy as np


@runtime_checkable
class JobEmbeddingStore(Protocol):
    """Protocol for storing and querying job embeddings."""

    def save_job_embeddings(self, embeddings: Dict[str, List[float]]) -> int:
        """
        Save embeddings keyed by job hash.

        Returns:
            Number of embeddings stored
        """
        ...

    def search(self, query: List[float], top_k: int = 10) -> List[Tuple[str, float]]:
        """
        Find the jobs most similar to ``query``.

        Returns:
            (job_hash, cosine similarity) pairs, most similar first
        """
        ...


class InMemoryJobEmbeddingStore:
    """In-memory implementation of the job embedding store (tests, local runs)."""

    def __init__(self):
        self._vectors: Dict[str, np.ndarray] = {}

    def save_job_embeddings(self, embeddings: Dict[str, List[float]]) -> int:
        for job_hash, vector in embeddings.items():
            self._vectors[job_hash] = np.asarray(vector, dtype=np.float32)
        return len(embeddings)

    def get(self, job_hash: str) -> Optional[List[float]]:
        vector = self._vectors.get(job_hash)
        return vector.tolist() if vector is not None else None

    def search(self, query: List[float], top_k: int = 10) -> List[Tuple[str, float]]:
        if not self._vectors or top_k <= 0:
            return []

        hashes = list(self._vectors.keys())
        matrix = np.vstack([self._vectors[h] for h in hashes])    # (num_jobs, dim)
        q = np.asarray(query, dtype=np.float32)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
        sims = (matrix @ q) / np.maximum(norms, 1e-12)

        # Stable sort keeps insertion order for equal similarity
        order = np.argsort(-sims, kind="stable")[:top_k]
        return [(hashes[i], float(sims[i])) for i in order]

    def clear(self) -> None:
        self._vectors.clear()

    def __len__(self) -> int:
        return len(self._vectors)
