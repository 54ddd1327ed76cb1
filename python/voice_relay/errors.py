"""Exceptions raised by the relay."""


class RelayError(Exception):
    """Base class for relay errors."""


class DecodeError(RelayError):
    """Audio payload could not be decoded into 16-bit PCM samples."""


class MessageDecodeError(RelayError):
    """A JSON envelope from either side was malformed."""


class HandshakeError(RelayError):
    """The voice agent handshake or socket open failed."""
