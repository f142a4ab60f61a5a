"""MediaDeck: local media player core (signal graph, transport, crossfade, queue)."""

__version__ = "1.0.0"
