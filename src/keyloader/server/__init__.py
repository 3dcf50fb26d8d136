"""HTTP key entry server for keyloader.

Serves the key form, runs unlock attempts against the configured dataset,
and shuts the listener down after the first success.
"""
