"""keyloader -- Remote ZFS key loader.

Serves a small web form during an unattended boot so an operator can
supply the decryption key for an encrypted ZFS dataset. Once the key has
been loaded successfully the server shuts itself down.
"""

__version__ = "0.2.0"
