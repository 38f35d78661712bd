"""Querya: a conversational agent that loops a chat model over callable tools."""

__version__ = "2.8.0"
