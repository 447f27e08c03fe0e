from .destination_store import DestinationStore

__all__ = ["DestinationStore"]
