"""Raw artifact storage for SERP responses, HTML pages and sitemaps."""

from app.storage.blob_store import BlobStore, LocalBlobStore, StoredBlob

__all__ = ["BlobStore", "LocalBlobStore", "StoredBlob"]
