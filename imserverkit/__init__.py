"""Building blocks for an instant-messaging server: protocol, packet codec, JSON messages, config, logging, Redis client, thread pool and metrics endpoint."""

__version__ = "1.0.0"