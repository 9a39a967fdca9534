from impactdeck.services.blob_storage import BlobFetchError, BlobStorage

__all__ = ["BlobFetchError", "BlobStorage"]
