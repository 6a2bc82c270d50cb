"""Infrastructure shared by the transport, batching and session layers."""
