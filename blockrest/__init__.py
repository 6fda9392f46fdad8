"""Bitcoin chain data types and the JSON and HTTP response shapes of a block explorer REST API."""

__version__ = "0.1.0"