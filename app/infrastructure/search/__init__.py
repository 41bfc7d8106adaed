# Search infrastructure package
"""
Vector index adapters.

This package contains:
- PineconeVectorIndex: Pinecone REST API (production)
- FaissVectorIndex: in-memory catalog plus exact FAISS index (local development)
- book_mapper: lenient decoding of stored metadata into domain Books

Both adapters implement the domain VectorIndex port and share the metadata
shape defined by book_mapper, so a catalog exported from one can be loaded
by the other.
"""
