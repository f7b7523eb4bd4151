"""zkgraph - link graph builder for plain-text Zettelkasten notes."""

__version__ = "0.1.0"
