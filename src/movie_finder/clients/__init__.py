from .appwrite import AppwriteClient
from .catalog import CatalogClient, CatalogError, describe_error

__all__ = ["AppwriteClient", "CatalogClient", "CatalogError", "describe_error"]
