"""Application layer: persistence use cases behind the realtime relay."""
