"""plughost — plugin host with remote command registration for chat bots."""

__version__ = "0.1.0"
