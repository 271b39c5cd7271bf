"""Exceptions shared by the protocol core and its byte sources."""


class SourceExhausted(EOFError):
    """The byte source ended (EOF, closed port or read timeout).

    Always fatal to the read loop; the decoder never retries past it.
    """
