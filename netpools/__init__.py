"""TCP file-serving thread and process pools, a download client, a broadcast chat and a console peer chat."""

__version__ = "0.1.0"